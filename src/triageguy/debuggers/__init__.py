from .debugger import Debugger as Debugger
from .debugger import DEFAULT_COMMANDS as DEFAULT_COMMANDS
from .gdb import GDBDebugger as GDBDebugger
