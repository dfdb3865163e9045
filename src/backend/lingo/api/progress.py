"""
学习进度API路由
课时完成、进度汇总、生命值、离线同步
"""
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from lingo.core.database import get_db
from lingo.core.errors import ProgressError, to_http_exception
from lingo.core.security import CurrentUser, get_current_user, validate_lesson_id
from lingo.services import ProgressService, OfflineCompletion


router = APIRouter(prefix="/progress", tags=["学习进度"])


# Schemas
class UserProgressResponse(BaseModel):
    """用户进度响应"""
    user_id: str
    experience_points: int
    lives_current: int
    streak_current: int
    last_completed_lesson_id: Optional[str]
    last_activity_date: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class LessonCompletionResponse(BaseModel):
    """课时完成记录响应"""
    user_id: str
    lesson_id: str
    completed_at: datetime
    score: Optional[int]
    time_spent_seconds: Optional[int]

    class Config:
        from_attributes = True


class CompleteLessonRequest(BaseModel):
    """完成课时请求"""
    score: Optional[int] = Field(None, ge=0, le=100)
    time_spent_seconds: Optional[int] = Field(None, ge=0)


class CompleteLessonResponse(BaseModel):
    """完成课时响应"""
    progress: UserProgressResponse
    completion: LessonCompletionResponse
    experience_gained: int


class UserProgressUpdateRequest(BaseModel):
    """
    学习者更新进度请求（只更新提供的字段）

    经验值与连续天数只能由课时完成或管理端接口修改，请求中出现即返回 422
    """
    lives_current: Optional[int] = Field(None, ge=0)
    last_completed_lesson_id: Optional[str] = Field(
        None, min_length=1, max_length=36, pattern=r'^[a-zA-Z0-9_\-]+$'
    )

    class Config:
        extra = "forbid"


class ProgressSummaryResponse(BaseModel):
    """进度汇总响应"""
    user_id: str
    experience_points: int
    lives_current: int
    streak_current: int
    lessons_completed: int
    completion_percentage: float
    average_score: float
    longest_streak: int
    last_activity_date: Optional[datetime]
    courses_started: int
    courses_completed: int


class LessonCompletedResponse(BaseModel):
    lesson_id: str
    is_completed: bool


class PaginationInfo(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class CompletionListResponse(BaseModel):
    """完成记录分页响应"""
    data: List[LessonCompletionResponse]
    pagination: PaginationInfo


class LivesUpdateRequest(BaseModel):
    """生命值调整请求"""
    lives_change: int


class OfflineCompletionItem(BaseModel):
    """离线完成记录"""
    lesson_id: str = Field(..., min_length=1, max_length=36, pattern=r'^[a-zA-Z0-9_\-]+$')
    completed_at: datetime
    score: Optional[int] = Field(None, ge=0, le=100)
    time_spent_seconds: Optional[int] = Field(None, ge=0)


class OfflineSyncRequest(BaseModel):
    """离线同步请求"""
    completions: List[OfflineCompletionItem]
    last_sync_timestamp: datetime


class OfflineSyncResponse(BaseModel):
    """离线同步响应"""
    synced_completions: int
    skipped_duplicates: int
    skipped_unknown: int
    experience_gained: int
    updated_progress: UserProgressResponse


# Endpoints
@router.get("", response_model=UserProgressResponse)
def get_user_progress(
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """获取当前用户进度（不存在时自动创建）"""
    try:
        return ProgressService.get_user_progress(db, user.user_id)
    except ProgressError as e:
        raise to_http_exception(e)


@router.put("", response_model=UserProgressResponse)
def update_user_progress(
    request: UserProgressUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """手动更新当前用户进度的部分字段"""
    try:
        return ProgressService.update_user_progress(
            db, user.user_id, request.model_dump(exclude_unset=True)
        )
    except ProgressError as e:
        raise to_http_exception(e)


@router.get("/summary", response_model=ProgressSummaryResponse)
def get_progress_summary(
    course_id: Optional[str] = None,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    获取进度汇总

    指定 course_id 时，完成百分比只统计该课程
    """
    try:
        summary = ProgressService.get_progress_summary(db, user.user_id, course_id=course_id)
        return ProgressSummaryResponse(**summary)
    except ProgressError as e:
        raise to_http_exception(e)


@router.post(
    "/lesson/{lesson_id}",
    response_model=CompleteLessonResponse,
    status_code=status.HTTP_201_CREATED
)
def complete_lesson(
    lesson_id: str,
    request: Optional[CompleteLessonRequest] = None,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    完成课时

    Raises:
        404: 课时不存在
        409: 课时已完成
    """
    validate_lesson_id(lesson_id)
    request = request or CompleteLessonRequest()
    try:
        result = ProgressService.complete_lesson(
            db,
            user.user_id,
            lesson_id,
            score=request.score,
            time_spent_seconds=request.time_spent_seconds
        )
        return CompleteLessonResponse(
            progress=UserProgressResponse.model_validate(result.progress),
            completion=LessonCompletionResponse.model_validate(result.completion),
            experience_gained=result.experience_gained
        )
    except ProgressError as e:
        raise to_http_exception(e)


@router.get("/lesson/{lesson_id}/completed", response_model=LessonCompletedResponse)
def check_lesson_completion(
    lesson_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """查询课时是否已完成"""
    validate_lesson_id(lesson_id)
    return LessonCompletedResponse(
        lesson_id=lesson_id,
        is_completed=ProgressService.is_lesson_completed(db, user.user_id, lesson_id)
    )


@router.get("/completions", response_model=CompletionListResponse)
def list_lesson_completions(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    sort_by: str = "completed_at",
    sort_order: str = "desc",
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """分页获取完成记录"""
    try:
        result = ProgressService.get_user_lesson_completions(
            db, user.user_id, page=page, limit=limit, sort_by=sort_by, sort_order=sort_order
        )
    except ProgressError as e:
        raise to_http_exception(e)

    return CompletionListResponse(
        data=[LessonCompletionResponse.model_validate(c) for c in result["data"]],
        pagination=PaginationInfo(**result["pagination"])
    )


@router.put("/sync", response_model=OfflineSyncResponse)
def sync_offline_progress(
    request: OfflineSyncRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """同步离线完成记录"""
    items = [
        OfflineCompletion(
            lesson_id=item.lesson_id,
            completed_at=item.completed_at,
            score=item.score,
            time_spent_seconds=item.time_spent_seconds
        )
        for item in request.completions
    ]
    try:
        result = ProgressService.sync_offline_progress(
            db, user.user_id, items, last_sync_timestamp=request.last_sync_timestamp
        )
        return OfflineSyncResponse(
            synced_completions=result["synced_completions"],
            skipped_duplicates=result["skipped_duplicates"],
            skipped_unknown=result["skipped_unknown"],
            experience_gained=result["experience_gained"],
            updated_progress=UserProgressResponse.model_validate(result["updated_progress"])
        )
    except ProgressError as e:
        raise to_http_exception(e)


@router.put("/lives", response_model=UserProgressResponse)
def update_lives(
    request: LivesUpdateRequest,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """按增量调整生命值（结果限制在 0-10）"""
    try:
        return ProgressService.adjust_lives(db, user.user_id, request.lives_change)
    except ProgressError as e:
        raise to_http_exception(e)
