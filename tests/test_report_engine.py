"""报告统计测试"""

import pytest
from datetime import datetime, timedelta, timezone

from tracekey.models.observation import Observation
from tracekey.reporting.report_engine import (
    percentile, compute_rtt_stats, count_colo_transitions, most_frequent,
    compute_target_stats, generate_report
)

BASE_TIME = datetime(2024, 5, 1, tzinfo=timezone.utc)


def make_observation(url, minutes, success=True, rtt=100, colo='NRT'):
    return Observation(
        url=url,
        success=success,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        rtt_millis=rtt if success else None,
        error=None if success else '探测失败',
        colo=colo if success else None,
    )


class TestPercentile:
    """百分位数测试类"""

    def test_empty(self):
        """测试空样本"""
        assert percentile([], 0.95) == 0.0

    def test_single_value(self):
        """测试单个样本"""
        assert percentile([42], 0.5) == 42
        assert percentile([42], 0.95) == 42

    def test_two_values(self):
        """测试两个样本的线性插值"""
        assert percentile([10, 20], 0.5) == pytest.approx(15.0)
        assert percentile([10, 20], 0.95) == pytest.approx(19.5)

    def test_five_values(self):
        """测试五个样本"""
        values = [10, 20, 30, 40, 100]

        assert percentile(values, 0.5) == pytest.approx(30.0)
        assert percentile(values, 0.95) == pytest.approx(88.0)
        assert percentile(values, 0.0) == 10
        assert percentile(values, 1.0) == 100

    def test_rtt_stats(self):
        """测试时延统计"""
        stats = compute_rtt_stats([100, 10, 40, 30, 20])

        assert stats.min == 10
        assert stats.max == 100
        assert stats.mean == pytest.approx(40.0)
        assert stats.median == pytest.approx(30.0)
        assert stats.p95 == pytest.approx(88.0)

    def test_rtt_stats_empty(self):
        """测试没有时延样本"""
        stats = compute_rtt_stats([])

        assert (stats.min, stats.max, stats.mean, stats.median, stats.p95) == (0, 0, 0.0, 0.0, 0.0)


class TestColoStatistics:
    """colo 统计测试类"""

    def test_transitions(self):
        """测试切换次数"""
        assert count_colo_transitions(['A', 'A', 'B', 'A']) == 2
        assert count_colo_transitions(['A']) == 0
        assert count_colo_transitions([]) == 0

    def test_most_frequent(self):
        """测试最常见 colo"""
        assert most_frequent(['NRT', 'KIX', 'NRT']) == 'NRT'
        assert most_frequent([]) == ''

    def test_most_frequent_tie_prefers_greatest(self):
        """测试次数相同时取字典序最大者"""
        assert most_frequent(['KIX', 'NRT']) == 'NRT'
        assert most_frequent(['A', 'B', 'B', 'A']) == 'B'


class TestReportGeneration:
    """报告生成测试类"""

    def test_target_stats(self):
        """测试单目标统计"""
        url = 'https://a.example.com'
        observations = [make_observation(url, i) for i in range(13)]
        observations += [make_observation(url, 13 + i, success=False) for i in range(2)]

        stats = compute_target_stats(url, observations)

        assert stats.total_checks == 15
        assert stats.successful_checks == 13
        assert f"{stats.uptime:.3f}" == '86.667'
        assert stats.rtt_stats.min == 100

    def test_target_stats_sorted_chronologically(self):
        """测试按时间顺序统计切换"""
        url = 'https://a.example.com'
        observations = [
            make_observation(url, 3, colo='A'),
            make_observation(url, 0, colo='A'),
            make_observation(url, 2, colo='B'),
            make_observation(url, 1, colo='A'),
        ]

        stats = compute_target_stats(url, observations)

        assert stats.colo_transitions == 2
        assert stats.unique_colos == ['A', 'B']
        assert stats.most_frequent_colo == 'A'

    def test_failed_checks_excluded_from_rtt(self):
        """测试失败探测不计入时延和 colo"""
        url = 'https://a.example.com'
        observations = [
            make_observation(url, 0, rtt=50),
            make_observation(url, 1, success=False),
        ]

        stats = compute_target_stats(url, observations)

        assert stats.rtt_stats.max == 50
        assert stats.unique_colos == ['NRT']

    def test_generate_report(self):
        """测试整体报告"""
        targets = ['https://a.example.com', 'https://b.example.com', 'https://c.example.com']
        observations = [
            make_observation(targets[1], 0),
            make_observation(targets[0], 0),
            make_observation(targets[0], 1, success=False),
            make_observation('https://removed.example.com', 0),
        ]
        since, until = BASE_TIME, BASE_TIME + timedelta(hours=1)

        report = generate_report(observations, targets, since, until)

        assert report.configured_targets == 3
        assert report.reported_targets == 2
        assert [s.url for s in report.target_stats] == targets[:2]
        assert report.overall_uptime == pytest.approx(2 / 3 * 100)
        assert report.since == since
        assert report.until == until

    def test_generate_report_without_data(self):
        """测试没有数据的报告"""
        report = generate_report([], ['https://a.example.com'], BASE_TIME, BASE_TIME)

        assert report.reported_targets == 0
        assert report.overall_uptime == 0.0

    def test_overall_uptime_weighted_by_checks(self):
        """测试整体可用率按检查次数加权而非简单平均"""
        targets = ['https://a.example.com', 'https://b.example.com']
        observations = [make_observation(targets[0], i, success=i < 8) for i in range(10)]
        observations += [make_observation(targets[1], i) for i in range(5)]

        report = generate_report(observations, targets, BASE_TIME, BASE_TIME + timedelta(hours=1))

        assert [s.uptime for s in report.target_stats] == [pytest.approx(80.0), pytest.approx(100.0)]
        assert f"{report.overall_uptime:.3f}" == '86.667'
