"""后台通知分发

通知发送与检查周期解耦：dispatch 立即返回，实际发送在后台任务中进行，
并受固定数量的发送许可限制。
"""

import asyncio
from typing import Optional, Set

from .base import BaseAlerter
from ..utils.exceptions import AlertSendError
from ..utils.log_manager import get_logger


class PoolClosedError(Exception):
    """许可池已关闭"""


class NotificationPool:
    """可关闭的计数信号量"""

    def __init__(self, size: int):
        if size <= 0:
            raise ValueError("通知并发数必须大于0")
        self.size = size
        self._semaphore = asyncio.Semaphore(size)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def acquire(self) -> None:
        """
        获取一个许可

        Raises:
            PoolClosedError: 池已关闭
        """
        if self._closed:
            raise PoolClosedError()
        await self._semaphore.acquire()
        if self._closed:
            self._semaphore.release()
            raise PoolClosedError()

    def release(self) -> None:
        self._semaphore.release()

    def close(self) -> None:
        self._closed = True


class NotificationDispatcher:
    """把通知交给后台任务发送，不阻塞调用方"""

    def __init__(self, alerter: Optional[BaseAlerter], max_concurrent: int = 2):
        """
        Args:
            alerter: 通知器，为 None 时所有分发都被忽略
            max_concurrent: 同时进行的发送数量上限
        """
        self.alerter = alerter
        self.pool = NotificationPool(max_concurrent)
        self.running_tasks: Set[asyncio.Task] = set()
        self.logger = get_logger('dispatcher')

    def dispatch(self, text: str, label: str = '通知') -> Optional[asyncio.Task]:
        """
        在后台发送通知

        Args:
            text: 通知内容
            label: 日志中使用的描述

        Returns:
            后台任务；未配置通知器或池已关闭时返回 None
        """
        if self.alerter is None:
            self.logger.debug(f"未配置通知器，跳过{label}")
            return None

        if self.pool.closed:
            self.logger.warning(f"通知许可池已关闭，跳过{label}")
            return None

        task = asyncio.create_task(self._send(text, label))
        self.running_tasks.add(task)
        task.add_done_callback(self.running_tasks.discard)
        return task

    async def _send(self, text: str, label: str) -> bool:
        try:
            await self.pool.acquire()
        except PoolClosedError:
            self.logger.warning(f"通知许可池已关闭，跳过{label}")
            return False

        try:
            self.logger.info(f"正在发送{label}到 {self.alerter.name}...")
            await self.alerter.send_note(text)
            self.logger.info(f"{label}发送成功")
            return True
        except AlertSendError as e:
            self.logger.error(f"{label}发送失败: {e.format_error()}")
            return False
        except Exception as e:
            self.logger.error(f"{label}发送时发生异常: {e}", exc_info=True)
            return False
        finally:
            self.pool.release()

    async def wait_idle(self) -> None:
        """等待所有后台发送完成"""
        if self.running_tasks:
            await asyncio.gather(*list(self.running_tasks), return_exceptions=True)

    def close(self) -> None:
        """关闭许可池，之后的分发全部丢弃"""
        self.pool.close()
        if self.running_tasks:
            self.logger.info(f"仍有 {len(self.running_tasks)} 个通知在后台发送中")
