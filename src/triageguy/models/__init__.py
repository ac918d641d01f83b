
from .base import TriageguyBaseModel
from .execution_class import AccessEnum, ExecutionClass, SeverityEnum, CLASSES, EXECUTION_CLASSES
from .symbols import BinaryLocation, CrashLine, SourceLocation
from .crash_report import CrashReport
