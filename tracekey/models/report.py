"""报告相关的数据模型"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List


@dataclass
class RttStats:
    """往返时延统计（毫秒）"""
    min: int = 0
    max: int = 0
    mean: float = 0.0
    median: float = 0.0
    p95: float = 0.0


@dataclass
class TargetStats:
    """单个目标的统计结果"""
    url: str
    total_checks: int
    successful_checks: int
    uptime: float
    rtt_stats: RttStats = field(default_factory=RttStats)
    unique_colos: List[str] = field(default_factory=list)
    colo_transitions: int = 0
    most_frequent_colo: str = ''


@dataclass
class Report:
    """统计报告，按需生成，不持久化"""
    since: datetime
    until: datetime
    configured_targets: int
    reported_targets: int
    overall_uptime: float
    target_stats: List[TargetStats] = field(default_factory=list)
