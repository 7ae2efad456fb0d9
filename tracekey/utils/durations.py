"""时长字符串解析，例如 "1h"、"30m"、"1h30m"、"90" """

import re
from datetime import timedelta
from typing import Union

_UNIT_SECONDS = {
    'ms': 0.001,
    's': 1,
    'sec': 1,
    'm': 60,
    'min': 60,
    'h': 3600,
    'hr': 3600,
    'd': 86400,
    'w': 604800,
}

_TOKEN_RE = re.compile(r'(\d+)\s*(ms|sec|min|hr|s|m|h|d|w)')


def parse_duration(value: Union[str, int, float]) -> timedelta:
    """
    解析时长配置

    Args:
        value: 秒数（整数/浮点数/纯数字字符串）或由 <数字><单位> 组成的字符串

    Returns:
        timedelta: 解析后的时长

    Raises:
        ValueError: 格式无法识别
    """
    if isinstance(value, bool):
        raise ValueError(f"无效的时长: {value!r}")

    if isinstance(value, (int, float)):
        return timedelta(seconds=value)

    text = str(value).strip().lower()
    if not text:
        raise ValueError("时长不能为空")

    if re.fullmatch(r'\d+(\.\d+)?', text):
        return timedelta(seconds=float(text))

    total = 0.0
    position = 0
    for match in _TOKEN_RE.finditer(text):
        if text[position:match.start()].strip():
            raise ValueError(f"无效的时长: {value!r}")
        total += int(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        position = match.end()

    if position == 0 or text[position:].strip():
        raise ValueError(f"无效的时长: {value!r}")

    return timedelta(seconds=total)
