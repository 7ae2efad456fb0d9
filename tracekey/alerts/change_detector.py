"""colo 变化检测

比较本周期的成功探测结果与上次状态，生成去抖后的通知行，
并计算需要写回的状态。
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional, Tuple
from urllib.parse import urlparse

from ..models.observation import ChangeDetection, LastKnownState, Observation, utc_now
from ..utils.log_manager import get_logger

DEFAULT_DEBOUNCE = timedelta(minutes=5)


def rtt_badge(rtt_millis: Optional[int]) -> Tuple[str, str, str]:
    """按时延区间返回 (颜色, 文本, 单位)"""
    if rtt_millis is None:
        return '999', 'N/A', ''
    if rtt_millis < 300:
        color = '3a3'
    elif rtt_millis < 500:
        color = '991'
    elif rtt_millis < 1000:
        color = 'c52'
    else:
        color = 'b22'
    return color, str(rtt_millis), 'ms'


def display_host(url: str) -> str:
    return urlparse(url).hostname or url


def format_change_message(previous: str, current: str, observation: Observation) -> str:
    """生成 MFM 格式的 colo 变化通知行"""
    color, rtt_text, unit = rtt_badge(observation.rtt_millis)
    return (
        f"<small>`{previous}`</small>→`{current}` "
        f"$[border.color=0000,radius=10 $[bg.color={color} "
        f"$[fg.color=fff  {rtt_text}<small>{unit}</small> ]]] "
        f"?[{display_host(observation.url)}]({observation.url})"
    )


class ChangeDetector:
    """colo 变化检测器"""

    def __init__(self, debounce: timedelta = DEFAULT_DEBOUNCE):
        """
        Args:
            debounce: 同一目标两次通知之间的最小间隔
        """
        self.debounce = debounce
        self.logger = get_logger('change_detector')

    def detect(self, observations: Iterable[Observation],
               prev_states: Dict[str, LastKnownState],
               now: Optional[datetime] = None) -> ChangeDetection:
        """
        检测 colo 变化

        prev_states 为本周期持有的状态字典，发出通知时会直接更新其中的
        last_notification_timestamp。

        Args:
            observations: 本周期的探测结果
            prev_states: 以 url 为键的上次状态
            now: 当前时间，默认取 UTC 当前时间

        Returns:
            ChangeDetection: 通知行与需要保存的状态
        """
        now = now or utc_now()
        detection = ChangeDetection()
        successes = [o for o in observations if o.success]

        for observation in successes:
            prev_state = prev_states.get(observation.url)
            if prev_state is None:
                continue

            current, previous = observation.colo, prev_state.colo
            if current is None or previous is None or current == previous:
                continue

            if now - prev_state.last_notification_timestamp <= self.debounce:
                self.logger.info(
                    f"{observation.url} colo 变化 {previous} -> {current}，"
                    f"距上次通知不足 {self.debounce}，已抑制"
                )
                detection.suppressed.append(observation.url)
                continue

            self.logger.warning(f"{observation.url} colo 变化: {previous} -> {current}")
            detection.messages.append(format_change_message(previous, current, observation))
            prev_state.last_notification_timestamp = now

        for observation in successes:
            prev_state = prev_states.get(observation.url)
            detection.updated_states.append(LastKnownState(
                url=observation.url,
                colo=observation.colo,
                timestamp=observation.timestamp,
                last_notification_timestamp=(
                    prev_state.last_notification_timestamp if prev_state else now
                ),
            ))

        return detection
