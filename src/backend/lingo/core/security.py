"""
API 边界安全模块

提供当前用户识别、角色校验和路径参数验证。

认证由上游网关完成，网关通过请求头传递已验证的身份：
    X-User-Id: 用户ID（必需）
    X-User-Role: 用户角色（learner | content_creator | admin，默认 learner）
"""

import re
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from .errors import AuthorizationError, to_http_exception


ROLE_LEARNER = "learner"
ROLE_CONTENT_CREATOR = "content_creator"
ROLE_ADMIN = "admin"

_SAFE_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_\-]+$')


@dataclass
class CurrentUser:
    """当前请求的用户身份"""
    user_id: str
    role: str = ROLE_LEARNER


def validate_id_path(id_value: str, id_name: str = "ID") -> str:
    """
    验证路径参数中的 ID

    Args:
        id_value: 要验证的 ID 值
        id_name: ID 参数名称（用于错误消息）

    Returns:
        验证后的 ID 值

    Raises:
        HTTPException: 如果 ID 为空或包含非法字符
    """
    if not id_value:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{id_name} 不能为空"
        )

    # 只允许安全字符：字母、数字、下划线、连字符
    if not _SAFE_ID_PATTERN.match(id_value):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"无效的 {id_name}：只允许字母、数字、下划线和连字符"
        )

    return id_value


def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> CurrentUser:
    """从网关请求头解析当前用户"""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="用户未认证"
        )
    user_id = validate_id_path(x_user_id.strip(), "用户 ID")
    role = (x_user_role or ROLE_LEARNER).strip().lower()
    return CurrentUser(user_id=user_id, role=role)


def require_roles(*roles: str):
    """
    角色校验依赖

    使用方式：
        @router.post("/bonus")
        def grant_bonus(admin: CurrentUser = Depends(require_roles(ROLE_ADMIN))):
            ...
    """

    def _checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise to_http_exception(AuthorizationError("权限不足"))
        return user

    return _checker


# 便捷函数：验证课时 ID
def validate_lesson_id(lesson_id: str) -> str:
    """验证课时 ID"""
    return validate_id_path(lesson_id, "课时 ID")

