"""报告统计

按目标汇总结果日志中的探测记录，生成与展示方式无关的 Report。
"""

from collections import Counter
from datetime import datetime
from typing import Dict, List, Sequence

from ..models.observation import Observation
from ..models.report import Report, RttStats, TargetStats


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """
    线性插值百分位数

    rank = p * (n - 1)，在 floor 与 ceil 两个序位之间插值。

    Args:
        sorted_values: 已升序排列的样本
        p: 0~1 之间的分位

    Returns:
        float: 百分位数；空序列返回 0
    """
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])

    p = min(max(p, 0.0), 1.0)
    rank = p * (len(sorted_values) - 1)
    lower = int(rank)
    upper = min(lower + 1, len(sorted_values) - 1)
    weight = rank - lower
    if weight == 0:
        return float(sorted_values[lower])
    return sorted_values[lower] * (1 - weight) + sorted_values[upper] * weight


def compute_rtt_stats(rtts: List[int]) -> RttStats:
    if not rtts:
        return RttStats()

    sorted_rtts = sorted(rtts)
    return RttStats(
        min=sorted_rtts[0],
        max=sorted_rtts[-1],
        mean=sum(sorted_rtts) / len(sorted_rtts),
        median=percentile(sorted_rtts, 0.5),
        p95=percentile(sorted_rtts, 0.95),
    )


def count_colo_transitions(colos: Sequence[str]) -> int:
    """按时间顺序统计相邻 colo 不同的次数"""
    return sum(1 for prev, curr in zip(colos, colos[1:]) if prev != curr)


def most_frequent(colos: Sequence[str]) -> str:
    """出现次数最多的 colo，次数相同时取字典序最大者"""
    if not colos:
        return ''
    counts = Counter(colos)
    return max(counts.items(), key=lambda item: (item[1], item[0]))[0]


def compute_target_stats(url: str, observations: List[Observation]) -> TargetStats:
    ordered = sorted(observations, key=lambda o: o.timestamp)

    total = len(ordered)
    successful = sum(1 for o in ordered if o.success)
    rtts = [o.rtt_millis for o in ordered if o.success and o.rtt_millis is not None]
    colos = [o.colo for o in ordered if o.colo is not None]

    return TargetStats(
        url=url,
        total_checks=total,
        successful_checks=successful,
        uptime=(successful / total * 100.0) if total else 0.0,
        rtt_stats=compute_rtt_stats(rtts),
        unique_colos=sorted(set(colos)),
        colo_transitions=count_colo_transitions(colos),
        most_frequent_colo=most_frequent(colos),
    )


def generate_report(observations: Sequence[Observation], configured_targets: Sequence[str],
                    since: datetime, until: datetime) -> Report:
    """
    生成统计报告

    Args:
        observations: 时间范围内的探测结果
        configured_targets: 配置的目标列表，决定输出顺序
        since: 统计起始时间
        until: 统计结束时间

    Returns:
        Report: 没有记录的目标不会出现在 target_stats 中，但计入 configured_targets
    """
    by_target: Dict[str, List[Observation]] = {}
    for observation in observations:
        by_target.setdefault(observation.url, []).append(observation)

    target_stats = [
        compute_target_stats(url, by_target[url])
        for url in configured_targets
        if by_target.get(url)
    ]

    total_checks = sum(s.total_checks for s in target_stats)
    successful_checks = sum(s.successful_checks for s in target_stats)
    overall_uptime = (successful_checks / total_checks * 100.0) if total_checks else 0.0

    return Report(
        since=since,
        until=until,
        configured_targets=len(configured_targets),
        reported_targets=len(target_stats),
        overall_uptime=overall_uptime,
        target_stats=target_stats,
    )
