"""报告执行：读取结果日志、生成报告并输出"""

from datetime import datetime
from typing import Optional

from rich.console import Console

from .formatters import format_report_mfm, print_report_console
from .report_engine import generate_report
from ..alerts.base import BaseAlerter
from ..models.observation import utc_now
from ..models.report import Report
from ..models.settings import Settings
from ..services.result_log import ResultLog
from ..utils.exceptions import AlertSendError, ReportError, ResultLogError
from ..utils.log_manager import get_logger


class ReportRunner:
    """按时间窗口生成一次报告"""

    def __init__(self, settings: Settings, result_log: ResultLog,
                 alerter: Optional[BaseAlerter] = None, dry_run: bool = False,
                 console: Optional[Console] = None):
        """
        Args:
            settings: 运行配置
            result_log: 结果日志
            alerter: 报告投递使用的通知器，未配置token时为 None
            dry_run: 为 True 时只打印 MFM 文本，不发布
            console: rich 控制台，默认输出到标准输出
        """
        self.settings = settings
        self.result_log = result_log
        self.alerter = alerter
        self.dry_run = dry_run
        self.console = console or Console()
        self.logger = get_logger('report')

    def resolve_window(self, since: Optional[datetime] = None,
                       until: Optional[datetime] = None):
        """
        计算统计窗口，默认为截至当前的一个报告间隔

        Raises:
            ReportError: since 晚于 until
        """
        until = until or utc_now()
        since = since or (until - self.settings.reporting.interval_delta)
        if since > until:
            raise ReportError(
                f"--since ({since.isoformat()}) 必须早于或等于 --until ({until.isoformat()})")
        return since, until

    async def run(self, since: Optional[datetime] = None,
                  until: Optional[datetime] = None) -> Optional[Report]:
        """
        生成并输出报告

        Returns:
            Report；窗口内没有数据或读取失败时返回 None

        Raises:
            ReportError: 时间窗口无效
        """
        since, until = self.resolve_window(since, until)

        try:
            observations = await self.result_log.query(since, until)
        except ResultLogError as e:
            self.logger.error(f"无法读取探测结果，跳过本次报告: {e.format_error()}")
            return None

        if not observations:
            self.logger.info("指定时间段内没有数据，不生成报告")
            return None

        report = generate_report(observations, self.settings.target_urls, since, until)
        reporting = self.settings.reporting

        if reporting.output_to_console:
            print_report_console(report, reporting, self.console)

        if reporting.output_to_misskey:
            await self._deliver(format_report_mfm(report))

        return report

    async def _deliver(self, text: str) -> None:
        if self.dry_run:
            self.console.print("\n--- Misskey Dry Run ---", highlight=False)
            self.console.print(text, markup=False, highlight=False)
            return

        if self.alerter is None:
            self.logger.warning("未配置 misskey_token，跳过报告投递")
            return

        self.logger.info("正在发布报告到 Misskey...")
        try:
            await self.alerter.send_note(text)
        except AlertSendError as e:
            self.logger.error(f"报告发布失败: {e.format_error()}")
            return
        self.logger.info("报告已发布到 Misskey")
