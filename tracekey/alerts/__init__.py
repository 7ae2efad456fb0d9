"""通知模块"""

from .base import BaseAlerter
from .change_detector import ChangeDetector, format_change_message, rtt_badge
from .dispatcher import NotificationDispatcher, NotificationPool, PoolClosedError
from .misskey_alerter import MisskeyAlerter

__all__ = [
    'BaseAlerter',
    'ChangeDetector',
    'MisskeyAlerter',
    'NotificationDispatcher',
    'NotificationPool',
    'PoolClosedError',
    'format_change_message',
    'rtt_badge',
]
