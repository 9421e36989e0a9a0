"""
业务异常

所有可预期的错误都继承 AppException，由 main.py 中的异常处理器
统一转换为 {success: false, error: ...} 响应
"""

from fastapi import status


class AppException(Exception):
    """应用异常基类"""

    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class InvalidInputError(AppException):
    """请求参数非法（在任何写操作之前拒绝）"""

    def __init__(self, detail: str = "Invalid input"):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)


class AuthenticationError(AppException):
    """未认证或令牌无效"""

    def __init__(self, detail: str = "Authentication required"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, detail)


class PrivilegeLimitError(AppException):
    """超出当前特权等级允许的上限"""

    def __init__(self, detail: str, limit: int):
        super().__init__(status.HTTP_403_FORBIDDEN, detail)
        self.limit = limit


class NotFoundError(AppException):
    """资源不存在"""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status.HTTP_404_NOT_FOUND, detail)


class StoreUnavailableError(AppException):
    """存储读写失败，本次操作未被记录"""

    def __init__(self, detail: str = "Stats store unavailable"):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, detail)
