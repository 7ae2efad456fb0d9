"""报告渲染：Misskey MFM 文本与控制台 rich 输出"""

from datetime import datetime
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from ..models.report import Report
from ..models.settings import ReportingSettings

TIME_FORMAT = '%Y-%m-%d %H:%M:%S %Z'


def format_local(value: datetime) -> str:
    """转换为本地时区并格式化"""
    return value.astimezone().strftime(TIME_FORMAT)


def format_report_mfm(report: Report) -> str:
    """
    渲染为 Misskey Flavored Markdown

    Args:
        report: 统计报告

    Returns:
        str: 可直接作为 note 发布的文本
    """
    parts: List[str] = [
        "**📊 监控报告**\n",
        f"**期间:** {format_local(report.since)} ～ {format_local(report.until)}\n\n",
        "**总体概况**\n",
        f"- **监控目标:** {report.reported_targets} / {report.configured_targets} 个站点\n",
        f"- **整体可用率:** {report.overall_uptime:.3f}%\n\n",
    ]

    for stats in report.target_stats:
        rtt = stats.rtt_stats
        parts.append(f"**?[{stats.url}]({stats.url})**\n")
        parts.append(
            f"- **可用率:** {stats.uptime:.3f}% "
            f"({stats.successful_checks} / {stats.total_checks} 成功)\n"
        )
        parts.append(
            f"- **RTT:** Min: {rtt.min}ms, Max: {rtt.max}ms, Avg: {rtt.mean:.2f}ms, "
            f"Median: {rtt.median:.2f}ms, P95: {rtt.p95:.2f}ms\n"
        )
        parts.append(
            f"- **Colo:** {stats.colo_transitions}次切换, "
            f"最常见: {stats.most_frequent_colo or 'N/A'}, "
            f"全部: {', '.join(stats.unique_colos) or 'N/A'}\n\n"
        )

    return ''.join(parts)


def _colored(text: str, color: str) -> str:
    return f"[{color}]{escape(text)}[/{color}]"


def format_report_console(report: Report, settings: ReportingSettings) -> str:
    """
    渲染为 rich 标记文本，按阈值着色

    Args:
        report: 统计报告
        settings: 报告配置，提供可用率和时延阈值

    Returns:
        str: rich 标记文本
    """
    lines: List[str] = [
        "📊 监控报告",
        "-----------------",
        f"期间: {format_local(report.since)} ～ {format_local(report.until)}",
        f"总体概况: {report.reported_targets} / {report.configured_targets} 个站点, "
        f"整体可用率: {report.overall_uptime:.3f}%",
        "-----------------",
    ]

    for stats in report.target_stats:
        rtt = stats.rtt_stats

        uptime_text = f"{stats.uptime:.3f}%"
        if stats.uptime < settings.critical_uptime_threshold_percent:
            uptime_text = _colored(uptime_text, 'red')
        elif stats.uptime < settings.uptime_threshold_percent:
            uptime_text = _colored(uptime_text, 'yellow')
        else:
            uptime_text = _colored(uptime_text, 'green')

        avg_color = 'red' if rtt.mean > settings.rtt_threshold_ms else 'green'
        p95_color = 'red' if rtt.p95 > settings.p95_rtt_threshold_ms else 'green'

        lines.append(f"URL: [bold]{escape(stats.url)}[/bold]")
        lines.append(f"  可用率: {uptime_text}")
        lines.append(
            f"  RTT - Min: {rtt.min}ms, Max: {rtt.max}ms, "
            f"Avg: {_colored(f'{rtt.mean:.2f}ms', avg_color)} (thr: {settings.rtt_threshold_ms}ms), "
            f"Median: {rtt.median:.2f}ms, "
            f"P95: {_colored(f'{rtt.p95:.2f}ms', p95_color)} (thr: {settings.p95_rtt_threshold_ms}ms)"
        )
        lines.append(f"  Colo Transitions: {stats.colo_transitions}")
        lines.append(f"  Most Frequent Colo: {escape(stats.most_frequent_colo or 'N/A')}")
        lines.append(f"  Unique Colos: {escape(', '.join(stats.unique_colos) or 'N/A')}")

    return '\n'.join(lines)


def print_report_console(report: Report, settings: ReportingSettings,
                         console: Optional[Console] = None) -> None:
    """通过 rich 控制台输出报告"""
    console = console or Console()
    console.print(format_report_console(report, settings), highlight=False)
