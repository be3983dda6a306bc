# Utils package

from .logging_config import setup_logging, get_logger
from .error_handling import ErrorHandler, ComponentError, ErrorSeverity, close_all
from .seen_ids import SeenIdSet
from .scheduler import IntervalSchedule, run_periodic

__all__ = [
    "setup_logging",
    "get_logger",
    "ErrorHandler",
    "ComponentError",
    "ErrorSeverity",
    "close_all",
    "SeenIdSet",
    "IntervalSchedule",
    "run_periodic",
]
