"""数据模型模块"""

from .observation import (
    Observation, LastKnownState, ChangeDetection,
    utc_now, format_timestamp, parse_timestamp
)
from .report import RttStats, TargetStats, Report
from .settings import Settings, ReportingSettings

__all__ = ['Observation', 'LastKnownState', 'ChangeDetection', 'utc_now',
           'format_timestamp', 'parse_timestamp', 'RttStats', 'TargetStats',
           'Report', 'Settings', 'ReportingSettings']
