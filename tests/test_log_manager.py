"""
日志管理器测试模块
"""

import logging
import pytest

from tracekey.utils.log_manager import LogManager, LogLevel


@pytest.fixture
def fresh_manager():
    """提供独立的日志管理器实例，结束后恢复全局单例"""
    saved_instance = LogManager._instance
    LogManager._instance = None
    LogManager._initialized = False
    manager = LogManager()
    yield manager
    manager.cleanup()
    LogManager._instance = saved_instance


class TestLogManager:
    """日志管理器测试类"""

    def test_singleton_pattern(self, fresh_manager):
        """测试单例模式"""
        assert LogManager() is fresh_manager

    def test_default_configuration(self, fresh_manager):
        """测试默认配置"""
        assert fresh_manager._log_level == LogLevel.INFO
        assert fresh_manager._log_file is None
        assert fresh_manager._enable_console is True

    def test_get_logger_prefix(self, fresh_manager):
        """测试记录器名称带 tracekey 前缀"""
        logger = fresh_manager.get_logger('test.prefix')

        assert logger.name == 'tracekey.test.prefix'
        assert fresh_manager.get_logger('test.prefix') is logger
        assert logger.propagate is True

    def test_configure_invalid_level(self, fresh_manager):
        """测试无效的日志级别"""
        with pytest.raises(ValueError):
            fresh_manager.configure({'log_level': 'VERBOSE'})

    def test_configure_updates_existing_loggers(self, fresh_manager):
        """测试重新配置后已有记录器同步更新"""
        logger = fresh_manager.get_logger('test.reconfigure')

        fresh_manager.configure({'log_level': 'debug', 'enable_console': False})

        assert logger.level == logging.DEBUG
        assert logger.handlers == []

    def test_file_logging(self, fresh_manager, tmp_path):
        """测试文件日志输出"""
        log_file = tmp_path / 'logs' / 'tracekey.log'
        fresh_manager.configure({'log_file': str(log_file), 'enable_console': False})

        logger = fresh_manager.get_logger('test.file')
        logger.info("写入文件的日志")
        for handler in logger.handlers:
            handler.flush()

        assert "写入文件的日志" in log_file.read_text(encoding='utf-8')
        stats = fresh_manager.get_log_stats()
        assert stats['file_logging_enabled'] is True
        assert stats['current_log_size'] > 0

    def test_cleanup(self, fresh_manager):
        """测试清理处理器"""
        logger = fresh_manager.get_logger('test.cleanup')
        fresh_manager.cleanup()

        assert logger.handlers == []
        assert fresh_manager.get_log_stats()['loggers_count'] == 0
