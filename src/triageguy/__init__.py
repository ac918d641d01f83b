__version__ = "0.1.0"

from . import models as models
from . import sanitizer_parsers as sanitizer_parsers

LOG_FORMAT = (
    "%(asctime)s [%(levelname)-8s] "
    "%(name)s:%(lineno)d | %(message)s"
)
