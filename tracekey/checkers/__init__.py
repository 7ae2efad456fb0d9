"""探测器模块"""

from .base import BaseChecker
from .trace_checker import TraceChecker, build_trace_url, extract_colo

__all__ = ['BaseChecker', 'TraceChecker', 'build_trace_url', 'extract_colo']
