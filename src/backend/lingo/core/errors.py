"""
进度引擎异常定义

所有业务失败都以带类型的异常返回给调用方，由 API 层转换为 HTTP 状态码：
- ValidationError   -> 400
- NotFoundError     -> 404
- ConflictError     -> 409
- AuthorizationError -> 403
- StorageFailure    -> 503（临时故障，可安全重试）
"""
from typing import Optional

from fastapi import HTTPException


class ProgressError(Exception):
    """进度引擎异常基类"""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.message = message
        self.cause = cause
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


class ValidationError(ProgressError):
    """输入不合法"""


class NotFoundError(ProgressError):
    """引用的课时或用户进度不存在"""


class ConflictError(ProgressError):
    """与现有数据冲突"""


class AlreadyCompletedError(ConflictError):
    """课时已被该用户完成（重复提交）"""

    def __init__(self, user_id: str, lesson_id: str, cause: Optional[Exception] = None):
        self.user_id = user_id
        self.lesson_id = lesson_id
        super().__init__(f"课时 {lesson_id} 已完成", cause)


class AuthorizationError(ProgressError):
    """权限不足"""


class StorageFailure(ProgressError):
    """数据库 / 事务失败，事务已回滚"""


# 异常类型 -> (HTTP 状态码, 面向用户的提示)
_HTTP_MAPPING = (
    (AlreadyCompletedError, 409, "课时已完成"),
    (ValidationError, 400, None),
    (NotFoundError, 404, None),
    (ConflictError, 409, None),
    (AuthorizationError, 403, None),
    (StorageFailure, 503, "服务暂时不可用，请稍后重试"),
)


def to_http_exception(error: ProgressError) -> HTTPException:
    """
    将业务异常转换为 HTTPException

    AlreadyCompletedError 以"课时已完成"呈现，StorageFailure 以可重试的临时故障呈现，
    其余异常直接使用异常消息。
    """
    for error_type, status_code, detail in _HTTP_MAPPING:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=detail or error.message)
    return HTTPException(status_code=500, detail=error.message)
