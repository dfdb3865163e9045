"""
管理端进度 API 路由

安全说明：
- 奖励经验值、重置进度仅限 admin 角色
- 课时统计允许 admin 与 content_creator 角色
- 所有路径参数已进行字符白名单验证
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from lingo.api.progress import UserProgressResponse
from lingo.core.database import get_db
from lingo.core.errors import ProgressError, to_http_exception
from lingo.core.security import (
    ROLE_ADMIN,
    ROLE_CONTENT_CREATOR,
    CurrentUser,
    require_roles,
    validate_lesson_id,
)
from lingo.services import AdminProgressService, ProgressService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/progress", tags=["Admin"])


# ==================== 请求/响应模型 ====================

class BonusRequest(BaseModel):
    """奖励经验值请求"""
    target_user_id: str = Field(..., min_length=1, max_length=36, pattern=r'^[a-zA-Z0-9_\-]+$')
    bonus_points: int = Field(..., ge=0)
    reason: str = Field(..., min_length=1, max_length=500)


class ResetRequest(BaseModel):
    """重置进度请求"""
    target_user_id: str = Field(..., min_length=1, max_length=36, pattern=r'^[a-zA-Z0-9_\-]+$')


class LessonStatsResponse(BaseModel):
    """课时完成统计"""
    lesson_id: str
    total_completions: int
    average_score: Optional[float]
    average_time_spent: Optional[float]


# ==================== 接口 ====================

@router.post("/bonus", response_model=UserProgressResponse)
def grant_bonus(
    request: BonusRequest,
    admin: CurrentUser = Depends(require_roles(ROLE_ADMIN)),
    db: Session = Depends(get_db)
):
    """奖励经验值（不产生完成记录）"""
    try:
        progress = AdminProgressService.grant_bonus(
            db, request.target_user_id, request.bonus_points, request.reason
        )
    except ProgressError as e:
        raise to_http_exception(e)

    logger.info(
        f"管理员奖励经验值: admin={admin.user_id}, target={request.target_user_id}, "
        f"bonus={request.bonus_points}"
    )
    return progress


@router.post("/reset", response_model=UserProgressResponse)
def reset_progress(
    request: ResetRequest,
    admin: CurrentUser = Depends(require_roles(ROLE_ADMIN)),
    db: Session = Depends(get_db)
):
    """重置用户进度（删除全部完成记录，不可恢复）"""
    try:
        progress = AdminProgressService.reset_progress(db, request.target_user_id)
    except ProgressError as e:
        raise to_http_exception(e)

    logger.info(f"管理员重置用户进度: admin={admin.user_id}, target={request.target_user_id}")
    return progress


@router.get("/lesson/{lesson_id}/stats", response_model=LessonStatsResponse)
def get_lesson_stats(
    lesson_id: str,
    user: CurrentUser = Depends(require_roles(ROLE_ADMIN, ROLE_CONTENT_CREATOR)),
    db: Session = Depends(get_db)
):
    """课时完成统计"""
    validate_lesson_id(lesson_id)
    return ProgressService.get_lesson_completion_stats(db, lesson_id)
