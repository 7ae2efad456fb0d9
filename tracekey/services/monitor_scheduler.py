"""监控调度器模块

负责两个定时触发（检查周期与报告周期）的调度，以及单次检查周期的编排：
加载状态 -> 并发探测 -> 变化检测 -> 后台通知 -> 保存状态 -> 写入结果日志。
"""

import asyncio
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..alerts.change_detector import ChangeDetector
from ..alerts.dispatcher import NotificationDispatcher
from ..checkers.base import BaseChecker
from ..models.observation import Observation, utc_now
from ..models.settings import Settings
from ..services.result_log import ResultLog
from ..services.state_store import StateStore
from ..utils.exceptions import ResultLogError, StateStoreError, TracekeyError
from ..utils.log_manager import get_logger


class IntervalTimer:
    """固定间隔计时器

    错过的触发点直接跳过：周期超时后，下一次触发对齐到当前时间之后的
    下一个网格点，不会连续补发。
    """

    def __init__(self, period: float, start: Optional[float] = None,
                 fire_immediately: bool = True):
        """
        Args:
            period: 间隔（秒）
            start: 起始时间（time.monotonic 时钟），默认为当前时间
            fire_immediately: 为 False 时消费掉第一次触发
        """
        if period <= 0:
            raise ValueError("间隔必须大于0")
        self.period = period
        start = time.monotonic() if start is None else start
        self.next_deadline = start if fire_immediately else start + period

    def remaining(self, now: float) -> float:
        return max(0.0, self.next_deadline - now)

    def due(self, now: float) -> bool:
        return now >= self.next_deadline

    def advance(self, now: float) -> None:
        """在触发后推进到下一个未过期的网格点"""
        self.next_deadline += self.period
        if self.next_deadline <= now:
            missed = int((now - self.next_deadline) // self.period) + 1
            self.next_deadline += missed * self.period


class MonitorScheduler:
    """监控调度器

    同一时刻只执行检查周期、报告周期或关闭中的一个；检查周期内部的探测
    受 max_concurrent_checks 限制并发执行，通知发送在后台进行。
    """

    def __init__(self, settings: Settings, checker: BaseChecker,
                 state_store: StateStore, result_log: ResultLog,
                 change_detector: Optional[ChangeDetector] = None,
                 dispatcher: Optional[NotificationDispatcher] = None,
                 report_runner: Optional[Any] = None):
        """初始化监控调度器

        Args:
            settings: 运行配置
            checker: 探测器
            state_store: 状态存储
            result_log: 结果日志
            change_detector: 变化检测器
            dispatcher: 后台通知分发器
            report_runner: 报告执行器，需提供 async run()
        """
        self.settings = settings
        self.checker = checker
        self.state_store = state_store
        self.result_log = result_log
        self.change_detector = change_detector or ChangeDetector()
        self.dispatcher = dispatcher
        self.report_runner = report_runner

        self.is_running = False
        self.shutdown_event = asyncio.Event()
        self.cycle_count = 0
        self.report_count = 0
        self.last_cycle_at: Optional[datetime] = None
        self.logger = get_logger('scheduler')

    @property
    def notifications_enabled(self) -> bool:
        return (self.dispatcher is not None
                and self.settings.colo_change_notify_misskey
                and self.settings.has_misskey_token)

    async def probe_all(self) -> List[Observation]:
        """
        并发探测全部目标，最多同时进行 max_concurrent_checks 个

        Returns:
            全部探测结果，顺序与配置的目标一致
        """
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_checks)

        async def probe(url: str) -> Observation:
            async with semaphore:
                return await self.checker.check(url)

        return list(await asyncio.gather(*(probe(url) for url in self.settings.target_urls)))

    async def run_check_cycle(self) -> List[Observation]:
        """执行一次完整的检查周期

        Returns:
            本周期的全部探测结果
        """
        self.logger.info("开始检查周期")

        try:
            prev_states = await self.state_store.load()
        except (OSError, StateStoreError) as e:
            self.logger.error(f"加载上次状态失败，按无历史状态处理: {e}")
            prev_states = {}

        results = await self.probe_all()
        for result in results:
            if result.success:
                self.logger.info(
                    f"{result.url}: colo={result.colo or 'N/A'}, rtt={result.rtt_millis}ms")
            else:
                self.logger.warning(f"{result.url} 探测失败: {result.error}")

        detection = self.change_detector.detect(results, prev_states, utc_now())

        if detection.has_alerts and self.notifications_enabled:
            self.dispatcher.dispatch('\n'.join(detection.messages), label='colo变化通知')

        if detection.updated_states:
            try:
                await self.state_store.save(detection.updated_states)
            except StateStoreError as e:
                self.logger.error(f"保存状态失败: {e.format_error()}")

        if results:
            try:
                await self.result_log.append(results)
            except ResultLogError as e:
                self.logger.error(f"写入结果日志失败: {e.format_error()}")

        self.cycle_count += 1
        self.last_cycle_at = utc_now()
        return results

    async def run_report_cycle(self) -> None:
        """执行一次报告周期，失败只记录日志"""
        if self.report_runner is None or not self.settings.reporting.enabled:
            return

        self.logger.info("正在生成定期报告...")
        try:
            await self.report_runner.run()
            self.report_count += 1
        except TracekeyError as e:
            self.logger.error(f"生成定期报告失败: {e.format_error()}")
        except Exception as e:
            self.logger.error(f"生成定期报告时发生异常: {e}", exc_info=True)

    async def start(self):
        """启动调度循环，直到 request_shutdown 被调用"""
        if self.is_running:
            self.logger.warning("监控调度器已经在运行")
            return

        self.is_running = True
        now = time.monotonic()
        check_timer = IntervalTimer(self.settings.check_interval_seconds, now)
        report_timer = IntervalTimer(
            self.settings.reporting.interval_delta.total_seconds(), now,
            fire_immediately=False)

        self.logger.info(
            f"启动监控调度器: {len(self.settings.target_urls)} 个目标, "
            f"检查间隔 {self.settings.check_interval_seconds}s, "
            f"最大并发 {self.settings.max_concurrent_checks}"
        )

        try:
            while not self.shutdown_event.is_set():
                now = time.monotonic()
                wait = min(check_timer.remaining(now), report_timer.remaining(now))
                if wait > 0:
                    try:
                        await asyncio.wait_for(self.shutdown_event.wait(), timeout=wait)
                        break
                    except asyncio.TimeoutError:
                        pass

                now = time.monotonic()
                if check_timer.due(now):
                    await self.run_check_cycle()
                    check_timer.advance(time.monotonic())
                elif report_timer.due(now):
                    await self.run_report_cycle()
                    report_timer.advance(time.monotonic())
        finally:
            await self.stop()

    def request_shutdown(self):
        """请求停止，当前周期执行完成后退出循环"""
        self.logger.info("收到停止请求")
        self.shutdown_event.set()

    async def stop(self):
        """停止监控调度器，后台通知不再等待"""
        if not self.is_running:
            return

        self.is_running = False
        if self.dispatcher is not None:
            self.dispatcher.close()
        self.logger.info("监控调度器已停止")

    def get_scheduler_stats(self) -> Dict[str, Any]:
        """
        获取调度器统计信息

        Returns:
            调度器统计信息
        """
        return {
            'is_running': self.is_running,
            'total_targets': len(self.settings.target_urls),
            'max_concurrent_checks': self.settings.max_concurrent_checks,
            'cycle_count': self.cycle_count,
            'report_count': self.report_count,
            'last_cycle_at': self.last_cycle_at.isoformat() if self.last_cycle_at else None,
            'pending_notifications': len(self.dispatcher.running_tasks) if self.dispatcher else 0,
        }
