"""工具模块"""

from .exceptions import TracekeyError, ConfigError, CheckerError, AlertError
from .log_manager import LogManager, LogLevel, get_logger, configure_logging, log_manager

__all__ = [
    'TracekeyError', 'ConfigError', 'CheckerError', 'AlertError',
    'LogManager', 'LogLevel', 'get_logger', 'configure_logging', 'log_manager'
]
