"""自定义异常类和错误代码"""

import traceback
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(Enum):
    """错误代码枚举"""
    # 通用错误 (1000-1999)
    UNKNOWN_ERROR = 1000

    # 配置错误 (2000-2999)
    CONFIG_FILE_NOT_FOUND = 2000
    CONFIG_PARSE_ERROR = 2001
    CONFIG_VALIDATION_ERROR = 2002

    # 探测错误 (3000-3999)
    INVALID_TARGET = 3000
    CONNECTION_ERROR = 3001

    # 通知错误 (4000-4999)
    ALERT_CONFIG_ERROR = 4000
    ALERT_SEND_ERROR = 4001
    ALERT_RETRIES_EXHAUSTED = 4002

    # 状态存储错误 (6000-6999)
    STATE_STORE_ERROR = 6000
    STATE_PERSISTENCE_ERROR = 6001

    # 结果日志与报告错误 (7000-7999)
    RESULT_LOG_ERROR = 7000
    REPORT_ERROR = 7001


class TracekeyError(Exception):
    """tracekey 基础异常类"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recoverable: bool = True
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """将异常转换为字典格式"""
        return {
            'error_code': self.error_code.value,
            'error_name': self.error_code.name,
            'message': self.message,
            'details': self.details,
            'recoverable': self.recoverable,
            'timestamp': self.timestamp.isoformat(),
            'cause': str(self.cause) if self.cause else None,
            'traceback': traceback.format_exc() if self.cause else None
        }

    def format_error(self) -> str:
        """格式化错误信息"""
        error_msg = f"[{self.error_code.name}] {self.message}"
        if self.details:
            details_str = ", ".join([f"{k}={v}" for k, v in self.details.items()])
            error_msg += f" (详情: {details_str})"
        if self.cause:
            error_msg += f" (原因: {self.cause})"
        return error_msg


class ConfigError(TracekeyError):
    """配置相关异常，启动阶段出现即终止进程"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFIG_VALIDATION_ERROR,
        config_path: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if config_path:
            details['config_path'] = config_path
        kwargs.setdefault('recoverable', False)
        super().__init__(message, error_code, details, **kwargs)


class CheckerError(TracekeyError):
    """探测相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONNECTION_ERROR,
        url: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if url:
            details['url'] = url
        super().__init__(message, error_code, details, **kwargs)


class AlertError(TracekeyError):
    """通知相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.ALERT_SEND_ERROR,
        alert_name: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if alert_name:
            details['alert_name'] = alert_name
        super().__init__(message, error_code, details, **kwargs)


class AlertConfigError(AlertError):
    """通知配置异常"""

    def __init__(self, message: str, alert_name: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            ErrorCode.ALERT_CONFIG_ERROR,
            alert_name=alert_name,
            recoverable=False,
            **kwargs
        )


class AlertSendError(AlertError):
    """通知发送异常"""

    def __init__(self, message: str, alert_name: Optional[str] = None,
                 error_code: ErrorCode = ErrorCode.ALERT_SEND_ERROR, **kwargs):
        super().__init__(
            message,
            error_code,
            alert_name=alert_name,
            recoverable=True,
            **kwargs
        )


class DeliveryExhaustedError(AlertSendError):
    """重试次数用尽后仍未送达"""

    def __init__(self, message: str, attempts: int,
                 alert_name: Optional[str] = None, **kwargs):
        details = kwargs.pop('details', {})
        details['attempts'] = attempts
        super().__init__(
            message,
            alert_name=alert_name,
            error_code=ErrorCode.ALERT_RETRIES_EXHAUSTED,
            details=details,
            **kwargs
        )
        self.attempts = attempts


class StateStoreError(TracekeyError):
    """状态存储相关异常"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.STATE_STORE_ERROR,
        state_file: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop('details', {})
        if state_file:
            details['state_file'] = state_file
        super().__init__(message, error_code, details, **kwargs)


class StatePersistenceError(StateStoreError):
    """状态持久化失败，原状态文件保持不变"""

    def __init__(self, message: str, state_file: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            ErrorCode.STATE_PERSISTENCE_ERROR,
            state_file=state_file,
            **kwargs
        )


class ResultLogError(TracekeyError):
    """结果日志读写异常"""

    def __init__(self, message: str, log_path: Optional[str] = None, **kwargs):
        details = kwargs.pop('details', {})
        if log_path:
            details['log_path'] = log_path
        super().__init__(message, ErrorCode.RESULT_LOG_ERROR, details, **kwargs)


class ReportError(TracekeyError):
    """报告生成异常"""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCode.REPORT_ERROR, **kwargs)
