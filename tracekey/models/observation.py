"""探测结果与状态相关的数据模型"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List

_FRACTION_RE = re.compile(r'\.(\d+)')


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{key} 字段类型无效: {value!r}")
    return value


def utc_now() -> datetime:
    """返回带时区信息的当前 UTC 时间"""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """序列化为 ISO-8601 UTC 字符串，使用 Z 后缀"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec='microseconds').replace('+00:00', 'Z')


def parse_timestamp(value: str) -> datetime:
    """
    解析 ISO-8601 时间戳

    接受 Z 或 +00:00 后缀，超过微秒精度的小数部分会被截断，
    不带时区的时间按 UTC 处理。

    Raises:
        ValueError: 格式无效
    """
    if not isinstance(value, str):
        raise ValueError(f"时间戳必须是字符串: {value!r}")

    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    text = _FRACTION_RE.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), text, count=1)

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class Observation:
    """单次探测结果，写入结果日志后不再修改"""
    url: str
    success: bool
    timestamp: datetime = field(default_factory=utc_now)
    rtt_millis: Optional[int] = None
    error: Optional[str] = None
    colo: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """按结果日志的字段顺序序列化"""
        return {
            'timestamp': format_timestamp(self.timestamp),
            'url': self.url,
            'success': self.success,
            'rtt_millis': self.rtt_millis,
            'error': self.error,
            'colo': self.colo,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Observation':
        """
        从结果日志记录反序列化

        Raises:
            ValueError: 记录缺少字段或字段类型不正确
        """
        if not isinstance(data, dict):
            raise ValueError("记录必须是 JSON 对象")

        try:
            url = data['url']
            success = data['success']
            timestamp = parse_timestamp(data['timestamp'])
        except KeyError as e:
            raise ValueError(f"缺少字段: {e.args[0]}")

        if not isinstance(url, str) or not isinstance(success, bool):
            raise ValueError("url 或 success 字段类型无效")

        rtt_millis = data.get('rtt_millis')
        if rtt_millis is not None:
            if isinstance(rtt_millis, bool) or not isinstance(rtt_millis, (int, float)):
                raise ValueError(f"rtt_millis 字段类型无效: {rtt_millis!r}")
            rtt_millis = int(rtt_millis)

        error = _optional_str(data, 'error')
        colo = _optional_str(data, 'colo')

        return cls(
            url=url,
            success=success,
            timestamp=timestamp,
            rtt_millis=rtt_millis,
            error=error,
            colo=colo,
        )


@dataclass
class LastKnownState:
    """目标最近一次成功探测的状态"""
    url: str
    colo: Optional[str]
    timestamp: datetime
    last_notification_timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'colo': self.colo,
            'timestamp': format_timestamp(self.timestamp),
            'last_notification_timestamp': format_timestamp(self.last_notification_timestamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LastKnownState':
        """缺少 last_notification_timestamp 时取当前时间"""
        if not isinstance(data, dict):
            raise ValueError("状态记录必须是 JSON 对象")

        url = data['url']
        if not isinstance(url, str):
            raise ValueError(f"url 字段类型无效: {url!r}")

        last_notification = data.get('last_notification_timestamp')
        return cls(
            url=url,
            colo=_optional_str(data, 'colo'),
            timestamp=parse_timestamp(data['timestamp']),
            last_notification_timestamp=(
                parse_timestamp(last_notification) if last_notification else utc_now()
            ),
        )


@dataclass
class ChangeDetection:
    """一次变化检测的输出"""
    messages: List[str] = field(default_factory=list)
    updated_states: List[LastKnownState] = field(default_factory=list)
    suppressed: List[str] = field(default_factory=list)

    @property
    def has_alerts(self) -> bool:
        return bool(self.messages)
