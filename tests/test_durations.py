"""时长解析测试"""

import pytest
from datetime import timedelta

from tracekey.utils.durations import parse_duration


@pytest.mark.parametrize('value, expected', [
    (90, timedelta(seconds=90)),
    (1.5, timedelta(seconds=1.5)),
    ('90', timedelta(seconds=90)),
    ('30s', timedelta(seconds=30)),
    ('15m', timedelta(minutes=15)),
    ('1h', timedelta(hours=1)),
    ('1h30m', timedelta(minutes=90)),
    ('2d', timedelta(days=2)),
    ('1w', timedelta(weeks=1)),
    ('500ms', timedelta(milliseconds=500)),
    ('1 h 5 min', timedelta(minutes=65)),
    ('2HR', timedelta(hours=2)),
])
def test_parse_duration(value, expected):
    """测试有效的时长格式"""
    assert parse_duration(value) == expected


@pytest.mark.parametrize('value', ['', 'abc', '1x', 'h1', '1h foo', True])
def test_parse_duration_invalid(value):
    """测试无效的时长格式"""
    with pytest.raises(ValueError):
        parse_duration(value)
