"""服务模块"""

from .config_manager import ConfigManager
from .monitor_scheduler import MonitorScheduler, IntervalTimer
from .result_log import ResultLog
from .state_store import StateStore

__all__ = ['ConfigManager', 'MonitorScheduler', 'IntervalTimer', 'ResultLog', 'StateStore']
