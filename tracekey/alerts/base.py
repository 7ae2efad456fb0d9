"""通知器基类"""

from abc import ABC, abstractmethod
from typing import Dict, Any


class BaseAlerter(ABC):
    """通知器抽象基类"""

    def __init__(self, name: str, config: Dict[str, Any]):
        """
        初始化通知器

        Args:
            name: 通知器名称
            config: 通知器配置参数
        """
        self.name = name
        self.config = config
        self.alerter_type = self.__class__.__name__.replace('Alerter', '').lower()

    @abstractmethod
    async def send_note(self, text: str) -> None:
        """
        发送一条通知

        Args:
            text: 通知内容

        Raises:
            AlertSendError: 发送最终失败
        """
        pass

    @abstractmethod
    def validate_config(self) -> bool:
        """
        验证配置参数是否有效

        Returns:
            bool: 配置是否有效
        """
        pass

    def get_timeout(self) -> float:
        """
        获取超时时间配置

        Returns:
            float: 超时时间（秒）
        """
        return self.config.get('timeout', 30)
