"""配置验证工具"""

from typing import Dict, Any, List
from urllib.parse import urlparse

from .durations import parse_duration
from .exceptions import ConfigError

SUPPORTED_OUTPUT_FORMATS = ['json', 'jsonl', 'none']
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
VALID_VISIBILITIES = ['public', 'home', 'followers', 'specified']


class ConfigValidator:
    """配置验证器，所有错误在启动阶段抛出 ConfigError"""

    @staticmethod
    def validate_target_urls(target_urls: Any) -> None:
        """
        验证监控目标列表

        Raises:
            ConfigError: 列表为空或包含非 http/https 地址
        """
        if not isinstance(target_urls, list) or not target_urls:
            raise ConfigError("target_urls 必须是非空列表")

        for url in target_urls:
            if not isinstance(url, str):
                raise ConfigError(f"无效的目标地址: {url!r}")
            parsed = urlparse(url)
            if parsed.scheme not in ('http', 'https'):
                raise ConfigError(f"不支持的URL协议 '{parsed.scheme}': {url}")
            if not parsed.netloc:
                raise ConfigError(f"目标地址缺少主机名: {url}")

    @staticmethod
    def validate_positive_int(config: Dict[str, Any], key: str) -> None:
        value = config.get(key)
        if value is None:
            return
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigError(f"{key} 必须是正整数")

    @staticmethod
    def validate_reporting_config(reporting: Dict[str, Any], output_format: str) -> None:
        """
        验证报告配置

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(reporting, dict):
            raise ConfigError("reporting 配置必须是字典类型")

        interval = reporting.get('interval')
        if interval is not None:
            try:
                delta = parse_duration(interval)
            except ValueError as e:
                raise ConfigError(f"reporting.interval 无法解析: {e}")
            if delta.total_seconds() <= 0:
                raise ConfigError("reporting.interval 不能为0")

        for key in ('rtt_threshold_ms', 'p95_rtt_threshold_ms',
                    'uptime_threshold_percent', 'critical_uptime_threshold_percent'):
            value = reporting.get(key)
            if value is not None and (isinstance(value, bool)
                                      or not isinstance(value, (int, float))
                                      or value < 0):
                raise ConfigError(f"reporting.{key} 必须是非负数")

        rtt_threshold = reporting.get('rtt_threshold_ms', 300)
        p95_threshold = reporting.get('p95_rtt_threshold_ms', 500)
        if p95_threshold < rtt_threshold:
            raise ConfigError("p95_rtt_threshold_ms 必须大于或等于 rtt_threshold_ms")

        visibility = reporting.get('misskey_visibility')
        if visibility is not None and visibility not in VALID_VISIBILITIES:
            raise ConfigError(
                f"misskey_visibility 必须是以下值之一: {VALID_VISIBILITIES}")

        if reporting.get('enabled') and output_format == 'none':
            raise ConfigError(
                "已启用报告功能，但 output_format 为 'none'。"
                "请将 output_format 设置为 'json' 或 'jsonl'")

    @staticmethod
    def validate_settings(config: Dict[str, Any]) -> None:
        """
        验证完整配置

        Args:
            config: 合并后的配置字典

        Raises:
            ConfigError: 配置验证失败
        """
        if not isinstance(config, dict):
            raise ConfigError("配置文件根节点必须是字典类型")

        ConfigValidator.validate_target_urls(config.get('target_urls'))

        for key in ('check_interval_seconds', 'max_concurrent_checks',
                    'misskey_concurrent_notifications'):
            ConfigValidator.validate_positive_int(config, key)

        timeout = config.get('request_timeout_seconds')
        if timeout is not None and (isinstance(timeout, bool)
                                    or not isinstance(timeout, (int, float))
                                    or timeout <= 0):
            raise ConfigError("request_timeout_seconds 必须是正数")

        output_format = config.get('output_format', 'jsonl')
        if output_format not in SUPPORTED_OUTPUT_FORMATS:
            raise ConfigError(
                f"不支持的 output_format '{output_format}'，"
                f"支持的格式: {SUPPORTED_OUTPUT_FORMATS}")

        log_level = config.get('log_level')
        if log_level is not None and str(log_level).upper() not in VALID_LOG_LEVELS:
            raise ConfigError(f"log_level 必须是以下值之一: {VALID_LOG_LEVELS}")

        misskey_url = config.get('misskey_url')
        if misskey_url:
            parsed = urlparse(misskey_url)
            if parsed.scheme not in ('http', 'https') or not parsed.netloc:
                raise ConfigError(f"misskey_url 格式无效: {misskey_url}")

        ConfigValidator.validate_reporting_config(config.get('reporting', {}), output_format)

    @staticmethod
    def known_keys() -> List[str]:
        return ['misskey_url', 'misskey_token', 'target_urls', 'check_interval_seconds',
                'user_agent', 'request_timeout_seconds', 'output_format', 'output_path',
                'state_file', 'max_concurrent_checks', 'colo_change_notify_misskey',
                'misskey_concurrent_notifications', 'log_level', 'log_file', 'reporting']
