"""探测器基类"""

from abc import ABC, abstractmethod
from typing import Dict, Any

from ..models.observation import Observation
from ..utils.log_manager import get_logger


class BaseChecker(ABC):
    """探测器抽象基类"""

    def __init__(self, config: Dict[str, Any]):
        """
        初始化探测器

        Args:
            config: 探测参数，如 timeout、user_agent
        """
        self.config = config
        self.checker_type = self.__class__.__name__.replace('Checker', '').lower()
        self.logger = get_logger(f'checker.{self.checker_type}')

    @abstractmethod
    async def check(self, url: str) -> Observation:
        """
        探测单个目标并返回结果

        实现不得抛出异常，所有错误都应转换为失败的 Observation。

        Args:
            url: 目标地址

        Returns:
            Observation: 探测结果
        """
        pass

    def get_timeout(self) -> float:
        """
        获取单次请求超时时间

        Returns:
            float: 超时时间（秒）
        """
        return self.config.get('timeout', 10)
