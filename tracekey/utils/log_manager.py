"""
日志管理器模块

提供统一的日志记录功能，支持控制台和文件输出、日志级别配置
以及基于文件大小的日志轮转。
"""

import logging
import logging.handlers
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any


class LogLevel(Enum):
    """日志级别枚举"""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class LogManager:
    """
    日志管理器类

    所有组件通过 get_logger 获取以 tracekey. 为前缀的日志记录器，
    重新配置后已创建的记录器会同步更新处理器。
    """

    _instance: Optional['LogManager'] = None
    _initialized: bool = False

    def __new__(cls) -> 'LogManager':
        """单例模式实现"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """初始化日志管理器"""
        if self._initialized:
            return

        self._loggers: Dict[str, logging.Logger] = {}
        self._default_format = (
            '%(asctime)s - %(name)s - %(levelname)s - '
            '[%(filename)s:%(lineno)d] - %(message)s'
        )
        self._console_format = '%(asctime)s - %(levelname)s - %(message)s'
        self._date_format = '%Y-%m-%d %H:%M:%S'

        self._log_level = LogLevel.INFO
        self._log_file: Optional[str] = None
        self._max_file_size = 10 * 1024 * 1024  # 10MB
        self._backup_count = 5
        self._enable_console = True
        self._enable_file = False

        self._initialized = True

    def configure(self, config: Dict[str, Any]) -> None:
        """
        配置日志管理器

        Args:
            config: 日志配置字典，包含以下可选键：
                - log_level: 日志级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
                - log_file: 日志文件路径
                - max_file_size: 最大文件大小（字节）
                - backup_count: 备份文件数量
                - enable_console: 是否启用控制台输出
        """
        if config.get('log_level'):
            level_str = str(config['log_level']).upper()
            if level_str not in LogLevel.__members__:
                raise ValueError(f"无效的日志级别: {level_str}")
            self._log_level = LogLevel[level_str]

        if config.get('log_file'):
            self._log_file = config['log_file']
            self._enable_file = True

        if 'max_file_size' in config:
            self._max_file_size = config['max_file_size']

        if 'backup_count' in config:
            self._backup_count = config['backup_count']

        if 'enable_console' in config:
            self._enable_console = config['enable_console']

        # 已创建的记录器按新配置重建处理器
        for logger in self._loggers.values():
            self._setup_handlers(logger)

    def get_logger(self, name: str) -> logging.Logger:
        """
        获取指定名称的日志记录器

        Args:
            name: 日志记录器名称，如 'scheduler'、'checker.trace'

        Returns:
            配置好的日志记录器实例
        """
        if name in self._loggers:
            return self._loggers[name]

        logger = logging.getLogger(f'tracekey.{name}')
        self._setup_handlers(logger)
        self._loggers[name] = logger
        return logger

    def _setup_handlers(self, logger: logging.Logger) -> None:
        """为记录器重新安装控制台与文件处理器"""
        logger.setLevel(self._log_level.value)

        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        if self._enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(self._log_level.value)
            console_handler.setFormatter(
                logging.Formatter(self._console_format, datefmt=self._date_format))
            logger.addHandler(console_handler)

        if self._enable_file and self._log_file:
            Path(self._log_file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self._log_file,
                maxBytes=self._max_file_size,
                backupCount=self._backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(self._log_level.value)
            file_handler.setFormatter(
                logging.Formatter(self._default_format, datefmt=self._date_format))
            logger.addHandler(file_handler)

        # 允许传播，便于 pytest 的 caplog 捕获
        logger.propagate = True

    def get_log_stats(self) -> Dict[str, Any]:
        """
        获取日志统计信息

        Returns:
            包含日志统计信息的字典
        """
        stats = {
            'loggers_count': len(self._loggers),
            'log_level': self._log_level.name,
            'file_logging_enabled': self._enable_file,
            'console_logging_enabled': self._enable_console,
            'log_file': self._log_file,
        }

        if self._log_file and os.path.exists(self._log_file):
            stats['current_log_size'] = os.path.getsize(self._log_file)

        return stats

    def cleanup(self) -> None:
        """关闭所有处理器"""
        for logger in self._loggers.values():
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

        self._loggers.clear()


# 全局日志管理器实例
log_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """
    获取日志记录器的便捷函数

    Args:
        name: 日志记录器名称

    Returns:
        配置好的日志记录器实例
    """
    return log_manager.get_logger(name)


def configure_logging(config: Dict[str, Any]) -> None:
    """配置日志系统的便捷函数"""
    log_manager.configure(config)
