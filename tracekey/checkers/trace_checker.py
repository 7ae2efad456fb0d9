"""Cloudflare trace 探测器"""

import asyncio
import time
from typing import Dict, Any, Optional
from urllib.parse import urljoin, urlparse

import aiohttp

from .base import BaseChecker
from ..models.observation import Observation, utc_now
from ..utils.exceptions import CheckerError, ErrorCode

TRACE_PATH = '/cdn-cgi/trace'
COLO_KEY = 'colo'


def build_trace_url(url: str) -> str:
    """
    根据目标地址构建 trace 地址，路径固定为 /cdn-cgi/trace

    Raises:
        CheckerError: 目标地址无效
    """
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise CheckerError(f"无效的目标地址: {url}", ErrorCode.INVALID_TARGET, url=url)
    return urljoin(url, TRACE_PATH)


def extract_colo(body: str) -> Optional[str]:
    """从 key=value 格式的响应体中提取 colo"""
    prefix = f'{COLO_KEY}='
    for line in body.splitlines():
        if line.startswith(prefix):
            return line[len(prefix):].strip()
    return None


class TraceChecker(BaseChecker):
    """请求 <target>/cdn-cgi/trace 并提取 colo 与往返时延"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config or {})
        self.user_agent = self.config.get('user_agent')

    async def check(self, url: str) -> Observation:
        """
        执行一次探测

        Args:
            url: 目标地址

        Returns:
            Observation: 成功时包含 rtt_millis 与 colo，失败时包含 error
        """
        error_message = None

        try:
            trace_url = build_trace_url(url)
            timeout = aiohttp.ClientTimeout(total=self.get_timeout())
            headers = {'User-Agent': self.user_agent} if self.user_agent else None

            async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
                start_time = time.monotonic()
                async with session.get(trace_url) as response:
                    response.raise_for_status()
                    body = await response.text()
                rtt_millis = int((time.monotonic() - start_time) * 1000)

            colo = extract_colo(body)
            self.logger.debug(f"{url} 探测成功: colo={colo or 'N/A'}, rtt={rtt_millis}ms")
            return Observation(
                url=url,
                success=True,
                timestamp=utc_now(),
                rtt_millis=rtt_millis,
                colo=colo,
            )

        except CheckerError as e:
            error_message = e.message
        except aiohttp.ClientResponseError as e:
            error_message = f"HTTP状态码异常: {e.status} {e.message}"
        except aiohttp.ClientError as e:
            error_message = f"HTTP客户端错误: {e}"
        except asyncio.TimeoutError:
            error_message = f"HTTP请求超时 ({self.get_timeout()}s)"
        except Exception as e:
            error_message = f"探测异常: {e}"

        self.logger.warning(f"{url} 探测失败: {error_message}")
        return Observation(url=url, success=False, timestamp=utc_now(), error=error_message)
