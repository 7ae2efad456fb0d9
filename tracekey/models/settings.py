"""运行配置模型，由 ConfigManager 校验后构建"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional

from ..utils.durations import parse_duration

DEFAULT_USER_AGENT = 'tracekey/1.0.0'


@dataclass
class ReportingSettings:
    """报告配置"""
    enabled: bool = False
    interval: str = '1h'
    output_to_console: bool = True
    output_to_misskey: bool = False
    misskey_visibility: str = 'home'
    rtt_threshold_ms: int = 300
    p95_rtt_threshold_ms: int = 500
    uptime_threshold_percent: float = 99.9
    critical_uptime_threshold_percent: float = 99.0

    @property
    def interval_delta(self) -> timedelta:
        return parse_duration(self.interval)


@dataclass
class Settings:
    """全局配置"""
    target_urls: List[str]
    misskey_url: str = ''
    misskey_token: Optional[str] = None
    check_interval_seconds: int = 60
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout_seconds: float = 10
    output_format: str = 'jsonl'
    output_path: str = 'results/results.jsonl'
    state_file: str = 'state/last_success.json'
    max_concurrent_checks: int = 10
    colo_change_notify_misskey: bool = False
    misskey_concurrent_notifications: int = 2
    log_level: str = 'INFO'
    log_file: Optional[str] = None
    reporting: ReportingSettings = field(default_factory=ReportingSettings)

    @property
    def has_misskey_token(self) -> bool:
        return bool(self.misskey_token)
