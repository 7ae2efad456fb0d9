"""Misskey 通知器实现"""

import asyncio
import random
from typing import Dict, Any, Optional
from urllib.parse import urljoin, urlparse

import aiohttp

from .base import BaseAlerter
from ..utils.exceptions import AlertConfigError, AlertSendError, DeliveryExhaustedError
from ..utils.log_manager import get_logger

NOTES_CREATE_PATH = '/api/notes/create'
MAX_ATTEMPTS = 5
INITIAL_DELAY = 1.0
MAX_JITTER = 1.0


class MisskeyAlerter(BaseAlerter):
    """通过 Misskey notes/create 接口发布通知"""

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化 Misskey 通知器

        Args:
            name: 通知器名称
            config: 包含 url、token、visibility，可选 timeout、user_agent
        """
        super().__init__(name, config)
        self.logger = get_logger(f'alerter.misskey.{self.name}')

        self.url = config.get('url', '')
        self.token = config.get('token') or ''
        self.visibility = config.get('visibility', 'home')
        self.user_agent = config.get('user_agent')

        # 重试配置
        self.max_attempts = config.get('max_attempts', MAX_ATTEMPTS)
        self.initial_delay = config.get('initial_delay', INITIAL_DELAY)
        self.max_jitter = config.get('max_jitter', MAX_JITTER)

        if not self.validate_config():
            raise AlertConfigError(f"Misskey通知器配置无效: {name}", alert_name=name)

    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        parsed_url = urlparse(self.url)
        if parsed_url.scheme not in ('http', 'https') or not parsed_url.netloc:
            self.logger.error(f"Misskey通知器 {self.name} URL格式无效: {self.url}")
            return False

        if not self.token:
            self.logger.error(f"Misskey通知器 {self.name} 缺少token配置")
            return False

        if self.max_attempts < 1:
            self.logger.error(f"Misskey通知器 {self.name} 最大尝试次数必须大于0")
            return False

        if self.initial_delay < 0:
            self.logger.error(f"Misskey通知器 {self.name} 重试延迟不能为负数")
            return False

        return True

    @property
    def api_url(self) -> str:
        return urljoin(self.url, NOTES_CREATE_PATH)

    def build_payload(self, text: str) -> Dict[str, str]:
        return {
            'i': self.token,
            'text': text,
            'visibility': self.visibility,
        }

    async def send_note(self, text: str) -> None:
        """
        发布一条通知，失败时按指数退避重试

        延迟从1秒开始，每次翻倍后再加上最多1秒的随机抖动。

        Args:
            text: 通知内容

        Raises:
            DeliveryExhaustedError: 所有尝试均失败
        """
        delay = self.initial_delay
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                self.logger.debug(f"尝试发送通知 (第 {attempt} 次)")
                success = await self._send_request(text)
                if success:
                    if attempt > 1:
                        self.logger.info(f"Misskey通知器 {self.name} 第 {attempt} 次尝试后发送成功")
                    else:
                        self.logger.info(f"Misskey通知器 {self.name} 发送成功")
                    return
                last_error = AlertSendError("Misskey API 返回非2xx状态码", alert_name=self.name)

            except AlertSendError as e:
                last_error = e
                self.logger.warning(
                    f"Misskey通知器 {self.name} 发送失败 "
                    f"(尝试 {attempt}/{self.max_attempts}): {e.message}"
                )

            if attempt >= self.max_attempts:
                break

            self.logger.debug(f"等待 {delay:.2f} 秒后重试")
            await asyncio.sleep(delay)
            delay = delay * 2 + random.uniform(0, self.max_jitter)

        self.logger.error(f"Misskey通知器 {self.name} 在 {self.max_attempts} 次尝试后放弃发送")
        raise DeliveryExhaustedError(
            f"发送到Misskey失败，已尝试 {self.max_attempts} 次",
            attempts=self.max_attempts,
            alert_name=self.name,
            cause=last_error,
        )

    async def _send_request(self, text: str) -> bool:
        """
        发送一次HTTP请求

        Args:
            text: 通知内容

        Returns:
            bool: 2xx 返回 True，其他状态码返回 False

        Raises:
            AlertSendError: 网络错误或超时
        """
        timeout = aiohttp.ClientTimeout(total=self.get_timeout())
        headers = {'User-Agent': self.user_agent} if self.user_agent else None

        async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
            try:
                async with session.post(self.api_url, json=self.build_payload(text)) as response:
                    if 200 <= response.status < 300:
                        return True

                    response_text = await response.text()
                    self.logger.warning(
                        f"Misskey通知器 {self.name} 收到错误响应 "
                        f"(状态码: {response.status}, 响应: {response_text[:200]})"
                    )
                    return False

            except aiohttp.ClientError as e:
                raise AlertSendError(f"HTTP请求失败: {e}", alert_name=self.name, cause=e)

            except asyncio.TimeoutError as e:
                raise AlertSendError("HTTP请求超时", alert_name=self.name, cause=e)

    def get_config_summary(self) -> Dict[str, Any]:
        """
        获取配置摘要（不包含token）

        Returns:
            Dict[str, Any]: 配置摘要
        """
        return {
            'name': self.name,
            'type': 'misskey',
            'url': self.url,
            'visibility': self.visibility,
            'timeout': self.get_timeout(),
            'max_attempts': self.max_attempts,
        }
