"""
统一异常定义模块
提供报价构建器的异常类和错误处理机制
"""

from typing import Optional, Dict, Any


class PortalError(Exception):
    """门户系统基础异常类"""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ConfigurationError(PortalError):
    """配置相关错误"""
    pass


class SessionStoreError(PortalError):
    """会话存储读写错误"""
    pass


class RecoverableParseError(PortalError):
    """缓存的会话/公司数据格式错误，本地捕获后按缺失处理"""
    pass


class ResolutionDegradation(PortalError):
    """未能解析公司/客户/专员，已使用文档约定的回退值"""
    pass


class SubmissionError(PortalError):
    """报价提交失败（网络或后端错误），原样抛给调用方"""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None,
                 status: Optional[int] = None, body: Any = None):
        super().__init__(message, error_code, context)
        self.status = status
        self.body = body


class ReconciliationError(PortalError):
    """提交成功后更新本地缓存失败，仅记录日志"""
    pass


# 错误代码常量
class ErrorCodes:
    """错误代码常量"""

    # 配置错误
    CONFIG_NOT_FOUND = "CONFIG_001"
    CONFIG_INVALID_FORMAT = "CONFIG_002"
    CONFIG_MISSING_KEY = "CONFIG_003"

    # 会话存储错误
    STORE_READ_FAILED = "STORE_001"
    STORE_WRITE_FAILED = "STORE_002"
    STORE_INVALID_VALUE = "STORE_003"

    # 解析降级
    PARSE_INVALID_JSON = "PARSE_001"
    PARSE_UNEXPECTED_TYPE = "PARSE_002"
    RESOLUTION_NO_USER = "RES_001"
    RESOLUTION_NO_COMPANY = "RES_002"
    RESOLUTION_NO_AGENT = "RES_003"
    RESOLUTION_NO_FEE = "RES_004"

    # 提交错误
    SUBMISSION_HTTP_ERROR = "SUB_001"
    SUBMISSION_NETWORK_ERROR = "SUB_002"
    SUBMISSION_TIMEOUT = "SUB_003"
    SUBMISSION_INVALID_RESPONSE = "SUB_004"

    # 缓存同步错误
    RECONCILE_NO_USER = "REC_001"
    RECONCILE_WRITE_FAILED = "REC_002"


def create_error_response(error: PortalError,
                         include_traceback: bool = False) -> Dict[str, Any]:
    """创建标准化的错误响应"""
    response = {
        "error": True,
        "error_code": error.error_code,
        "message": error.message,
        "context": error.context
    }

    if include_traceback:
        import traceback
        response["traceback"] = traceback.format_exc()

    return response
