#!/usr/bin/env python3
"""
tracekey 主应用程序入口

组装探测、状态存储、结果日志、通知与报告组件，
处理命令行参数、信号和启动阶段的配置校验。
"""

import argparse
import asyncio
import logging
import signal
import sys
from datetime import datetime
from typing import Optional, Dict, Any

from tracekey import __version__
from tracekey.alerts.change_detector import ChangeDetector
from tracekey.alerts.dispatcher import NotificationDispatcher
from tracekey.alerts.misskey_alerter import MisskeyAlerter
from tracekey.checkers.trace_checker import TraceChecker
from tracekey.models.observation import parse_timestamp
from tracekey.models.settings import Settings
from tracekey.reporting.runner import ReportRunner
from tracekey.services.config_manager import ConfigManager
from tracekey.services.monitor_scheduler import MonitorScheduler
from tracekey.services.result_log import ResultLog
from tracekey.services.state_store import StateStore
from tracekey.utils.exceptions import ConfigError, TracekeyError
from tracekey.utils.log_manager import log_manager, get_logger

DEFAULT_CONFIG = 'config/base.yaml'
DEFAULT_LOCAL_CONFIG = 'config/local.yaml'


class TracekeyApp:
    """tracekey 主应用程序类"""

    def __init__(self, settings: Settings, dry_run: bool = False):
        """初始化应用程序

        Args:
            settings: 已校验的运行配置
            dry_run: 报告只打印不发布
        """
        self.settings = settings
        self.dry_run = dry_run
        self.logger: logging.Logger = get_logger('main')

        self.alerter: Optional[MisskeyAlerter] = None
        self.result_log: Optional[ResultLog] = None
        self.dispatcher: Optional[NotificationDispatcher] = None
        self.report_runner: Optional[ReportRunner] = None
        self.monitor_scheduler: Optional[MonitorScheduler] = None

    def initialize(self):
        """初始化应用程序组件"""
        settings = self.settings

        if settings.has_misskey_token and settings.misskey_url:
            self.alerter = MisskeyAlerter('misskey', {
                'url': settings.misskey_url,
                'token': settings.misskey_token,
                'visibility': settings.reporting.misskey_visibility,
                'timeout': settings.request_timeout_seconds,
                'user_agent': settings.user_agent,
            })

        checker = TraceChecker({
            'timeout': settings.request_timeout_seconds,
            'user_agent': settings.user_agent,
        })
        state_store = StateStore(settings.state_file)
        self.result_log = ResultLog(settings.output_path, settings.output_format)
        self.dispatcher = NotificationDispatcher(
            self.alerter, settings.misskey_concurrent_notifications)
        self.report_runner = ReportRunner(
            settings, self.result_log, self.alerter, dry_run=self.dry_run)

        self.monitor_scheduler = MonitorScheduler(
            settings,
            checker,
            state_store,
            self.result_log,
            change_detector=ChangeDetector(),
            dispatcher=self.dispatcher,
            report_runner=self.report_runner,
        )

        self.logger.info("应用程序组件初始化完成")

    async def start(self):
        """启动监控循环，收到信号后在当前周期结束时退出"""
        self.logger.info(f"启动 tracekey 监控，User-Agent: {self.settings.user_agent}")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.shutdown)
            except (NotImplementedError, RuntimeError):
                # Windows 事件循环不支持 add_signal_handler
                signal.signal(sig, lambda signum, frame: self.shutdown())

        await self.monitor_scheduler.start()
        self.logger.info("tracekey 监控已停止")

    def shutdown(self):
        """触发应用程序关闭"""
        self.logger.info("收到关闭信号")
        if self.monitor_scheduler:
            self.monitor_scheduler.request_shutdown()

    async def check_once(self) -> bool:
        """执行一次检查周期并等待通知发送完成"""
        results = await self.monitor_scheduler.run_check_cycle()
        await self.dispatcher.wait_idle()
        return all(r.success for r in results)

    async def report_once(self, since: Optional[datetime] = None,
                          until: Optional[datetime] = None) -> bool:
        """生成一次报告"""
        await self.report_runner.run(since, until)
        return True

    def get_status(self) -> Dict[str, Any]:
        """
        获取应用程序状态

        Returns:
            应用程序状态信息
        """
        status: Dict[str, Any] = {
            'version': __version__,
            'targets': list(self.settings.target_urls),
            'notifications_configured': self.alerter is not None,
        }
        if self.monitor_scheduler:
            status['scheduler_stats'] = self.monitor_scheduler.get_scheduler_stats()
        if self.alerter:
            status['alerter'] = self.alerter.get_config_summary()
        return status


def parse_cli_timestamp(value: str) -> datetime:
    """argparse 使用的 ISO-8601 时间解析"""
    try:
        return parse_timestamp(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"无效的时间格式: {value}")


def create_argument_parser() -> argparse.ArgumentParser:
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        prog='tracekey',
        description='tracekey - 监控 Cloudflare colo 变化并发送通知与定期报告',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  %(prog)s                                   # 使用 config/base.yaml 启动监控
  %(prog)s config/prod.yaml --local-config config/prod.local.yaml
  %(prog)s --check-once                      # 执行一次检查后退出
  %(prog)s --report --since 2024-05-01T00:00:00Z --until 2024-05-02T00:00:00Z
  %(prog)s --report --dry-run                # 打印报告而不发布
  %(prog)s --validate                        # 验证配置文件
        """
    )

    parser.add_argument('config_file', nargs='?', default=DEFAULT_CONFIG,
                        help=f'YAML配置文件路径 (默认: {DEFAULT_CONFIG})')
    parser.add_argument('--local-config', default=DEFAULT_LOCAL_CONFIG,
                        help=f'本地覆盖配置文件路径，不存在时忽略 (默认: {DEFAULT_LOCAL_CONFIG})')
    parser.add_argument('--version', '-v', action='version',
                        version=f'%(prog)s {__version__}')
    parser.add_argument('--report', action='store_true',
                        help='生成一次报告后退出')
    parser.add_argument('--since', type=parse_cli_timestamp,
                        help='报告起始时间 (ISO-8601)')
    parser.add_argument('--until', type=parse_cli_timestamp,
                        help='报告结束时间 (ISO-8601)')
    parser.add_argument('--dry-run', action='store_true',
                        help='报告只打印 MFM 文本，不发布到 Misskey')
    parser.add_argument('--check-once', action='store_true',
                        help='执行一次检查后退出')
    parser.add_argument('--validate', action='store_true',
                        help='验证配置文件格式并退出')
    parser.add_argument('--log-level',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='设置日志级别（覆盖配置文件设置）')
    parser.add_argument('--log-file', help='日志文件路径（覆盖配置文件设置）')

    return parser


def configure_logging(settings: Settings):
    """按配置初始化日志系统"""
    log_manager.configure({
        'log_level': settings.log_level,
        'log_file': settings.log_file,
        'enable_console': True,
    })


async def main(argv=None) -> int:
    """主函数

    Returns:
        进程退出码
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        config_manager = ConfigManager(args.config_file, args.local_config)
        settings = config_manager.load_config({
            'log_level': args.log_level,
            'log_file': args.log_file,
        })
    except ConfigError as e:
        print(f"配置错误: {e.format_error()}", file=sys.stderr)
        return 1

    if args.validate:
        print("✅ 配置文件验证成功!")
        print(f"   - 监控目标数量: {len(settings.target_urls)}")
        for url in settings.target_urls:
            print(f"     * {url}")
        return 0

    configure_logging(settings)
    app = TracekeyApp(settings, dry_run=args.dry_run)

    try:
        app.initialize()

        if args.report:
            await app.report_once(args.since, args.until)
            return 0

        if args.check_once:
            success = await app.check_once()
            return 0 if success else 1

        await app.start()
        return 0

    except ConfigError as e:
        print(f"配置错误: {e.format_error()}", file=sys.stderr)
        return 1
    except TracekeyError as e:
        print(f"tracekey 错误: {e.format_error()}", file=sys.stderr)
        return 1
    finally:
        log_manager.cleanup()


def run():
    """控制台脚本入口"""
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\n用户中断程序")
        sys.exit(0)


if __name__ == "__main__":
    run()
