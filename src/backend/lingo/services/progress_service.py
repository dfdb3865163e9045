"""
学习进度与游戏化服务

负责课时完成记录、经验值计算、连续学习天数、生命值以及进度统计。
所有写操作都在单个事务内完成；(user_id, lesson_id) 的唯一约束是
重复完成的最终判定点，并发的重复请求只会有一个成功。
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.calendar_days import to_storage, utc_now
from ..core.config import get_progress_config
from ..core.database import transaction
from ..core.errors import (
    AlreadyCompletedError,
    ConflictError,
    NotFoundError,
    StorageFailure,
    ValidationError,
)
from ..core.gamification import GamificationRules
from ..models import LessonCompletion, UserProgress
from .content_lookup import ContentLookup, SqlContentLookup
from .progress_store import CompletionStore, ProgressStore

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    """一次课时完成的结果"""
    progress: UserProgress
    completion: LessonCompletion
    experience_gained: int


@dataclass
class OfflineCompletion:
    """客户端离线期间记录的一次课时完成"""
    lesson_id: str
    completed_at: datetime
    score: Optional[int] = None
    time_spent_seconds: Optional[int] = None


def _validate_score(score: Optional[int]):
    if score is not None and not 0 <= score <= 100:
        raise ValidationError(f"成绩必须位于 0-100 之间，当前值: {score}")


def _validate_time_spent(time_spent_seconds: Optional[int]):
    if time_spent_seconds is not None and time_spent_seconds < 0:
        raise ValidationError(f"学习时长不能为负数，当前值: {time_spent_seconds}")


def _now(now: Optional[datetime]) -> datetime:
    return to_storage(now) if now is not None else utc_now()


class ProgressService:
    """学习进度服务"""

    @staticmethod
    def get_user_progress(db: Session, user_id: str) -> UserProgress:
        """
        获取用户进度，不存在时按默认值创建

        默认值：经验值 0、生命值 5、连续天数 0。
        并发创建时，输掉主键竞争的请求直接读取已创建的记录。

        Args:
            db: 数据库会话
            user_id: 用户ID

        Returns:
            UserProgress: 用户进度
        """
        progress = ProgressStore.get(db, user_id)
        if progress:
            return progress

        try:
            with transaction(db):
                progress = ProgressStore.create_default(db, user_id, utc_now())
        except IntegrityError:
            progress = ProgressStore.get(db, user_id)
            if progress is None:
                raise StorageFailure(f"无法创建用户 {user_id} 的进度记录")
            return progress

        logger.info(f"已为用户创建初始进度: user={user_id}")
        return progress

    @staticmethod
    def update_user_progress(db: Session, user_id: str, updates: Dict) -> UserProgress:
        """
        手动更新用户进度的部分字段

        支持的字段：experience_points、lives_current、streak_current、last_completed_lesson_id。
        生命值会被限制在 [0, 上限]，连续天数不能为负；
        经验值只增不减（清零只能通过管理端重置）。

        Raises:
            NotFoundError: 用户进度不存在
            ValidationError: 字段值非法或经验值减少
        """
        experience = updates.get("experience_points")
        if experience is not None and experience < 0:
            raise ValidationError("经验值不能为负数")
        streak = updates.get("streak_current")
        if streak is not None and streak < 0:
            raise ValidationError("连续天数不能为负数")

        with transaction(db):
            progress = ProgressStore.get(db, user_id, for_update=True)
            if not progress:
                raise NotFoundError(f"用户 {user_id} 的进度不存在")
            if experience is not None and experience < progress.experience_points:
                raise ValidationError(
                    f"经验值不能减少: 当前 {progress.experience_points}，请求 {experience}"
                )

            if experience is not None:
                progress.experience_points = experience
            if updates.get("lives_current") is not None:
                progress.lives_current = GamificationRules.clamp_lives(updates["lives_current"])
            if streak is not None:
                progress.streak_current = streak
            if "last_completed_lesson_id" in updates:
                progress.last_completed_lesson_id = updates["last_completed_lesson_id"]
            progress.updated_at = utc_now()

        logger.info(f"用户进度已手动更新: user={user_id}, fields={sorted(updates.keys())}")
        return progress

    @staticmethod
    def complete_lesson(
        db: Session,
        user_id: str,
        lesson_id: str,
        score: Optional[int] = None,
        time_spent_seconds: Optional[int] = None,
        content: Optional[ContentLookup] = None,
        now: Optional[datetime] = None
    ) -> CompletionResult:
        """
        完成课时：幂等校验 -> 经验值计算 -> 连续天数计算 -> 原子写入

        经验值倍率：≥90 ×1.2，80-89 ×1.1，60-79 ×1.0，<60 ×0.8，未评分 ×1.0；
        结果向下取整且至少为 1。

        Args:
            db: 数据库会话
            user_id: 用户ID
            lesson_id: 课时ID
            score: 成绩（0-100，可选）
            time_spent_seconds: 学习时长（秒，可选）
            content: 内容查询接口（默认查询内容表）
            now: 完成时间（默认当前时间）

        Returns:
            CompletionResult: 更新后的进度、完成记录、本次获得的经验值

        Raises:
            NotFoundError: 课时不存在
            AlreadyCompletedError: 课时已完成（包括并发重复提交）
            StorageFailure: 数据库失败，未产生任何部分写入
        """
        _validate_score(score)
        _validate_time_spent(time_spent_seconds)
        content = content or SqlContentLookup(db)
        now = _now(now)

        if not content.lesson_exists(lesson_id):
            raise NotFoundError(f"课时 {lesson_id} 不存在")
        base_points = content.get_lesson_xp_value(lesson_id)

        ProgressService.get_user_progress(db, user_id)

        try:
            with transaction(db):
                if CompletionStore.find(db, user_id, lesson_id):
                    raise AlreadyCompletedError(user_id, lesson_id)

                # 唯一约束兜底：并发请求在这里 flush 失败
                completion = CompletionStore.insert(
                    db, user_id, lesson_id, now,
                    score=score, time_spent_seconds=time_spent_seconds
                )

                progress = ProgressStore.get(db, user_id, for_update=True)
                if progress is None:
                    progress = ProgressStore.create_default(db, user_id, now)

                experience = GamificationRules.calculate_experience(base_points, score)
                streak = GamificationRules.calculate_streak(
                    progress.streak_current, progress.last_activity_date, now
                )
                ProgressStore.apply_completion(progress, experience, streak, lesson_id, now, now)
        except AlreadyCompletedError:
            logger.warning(f"重复完成课时被拒绝: user={user_id}, lesson={lesson_id}")
            raise
        except IntegrityError as e:
            logger.warning(f"并发重复完成课时被拒绝: user={user_id}, lesson={lesson_id}")
            raise AlreadyCompletedError(user_id, lesson_id, e) from e

        logger.info(
            f"课时完成: user={user_id}, lesson={lesson_id}, score={score}, "
            f"xp+{experience} -> {progress.experience_points}, streak={streak}"
        )
        return CompletionResult(progress=progress, completion=completion, experience_gained=experience)

    @staticmethod
    def sync_offline_progress(
        db: Session,
        user_id: str,
        completions: Iterable[OfflineCompletion],
        last_sync_timestamp: Optional[datetime] = None,
        content: Optional[ContentLookup] = None,
        now: Optional[datetime] = None
    ) -> Dict:
        """
        同步离线完成记录

        按完成时间升序处理，整个批次在一个事务内：
        - 已完成（库中已有或批次内重复）的课时跳过并计数
        - 不存在的课时跳过并计数
        - 其余记录按相同规则计算经验值，并以各自的完成时间推进连续天数
        - 最近活动时间不会回退

        并发写入导致唯一约束冲突时整个批次回滚并抛出 ConflictError，
        重试时冲突项会被识别为重复。

        Returns:
            dict: synced_completions / skipped_duplicates / skipped_unknown /
                  experience_gained / updated_progress
        """
        items: List[OfflineCompletion] = sorted(
            completions, key=lambda item: to_storage(item.completed_at)
        )
        for item in items:
            _validate_score(item.score)
            _validate_time_spent(item.time_spent_seconds)
        content = content or SqlContentLookup(db)
        now = _now(now)

        ProgressService.get_user_progress(db, user_id)

        synced = 0
        skipped_duplicates = 0
        skipped_unknown = 0
        total_experience = 0

        try:
            with transaction(db):
                progress = ProgressStore.get(db, user_id, for_update=True)
                completed_ids = set(CompletionStore.lesson_ids_for_user(db, user_id))

                for item in items:
                    if item.lesson_id in completed_ids:
                        skipped_duplicates += 1
                        continue
                    if not content.lesson_exists(item.lesson_id):
                        logger.warning(f"离线同步中课时不存在，已跳过: user={user_id}, lesson={item.lesson_id}")
                        skipped_unknown += 1
                        continue

                    completed_at = to_storage(item.completed_at)
                    CompletionStore.insert(
                        db, user_id, item.lesson_id, completed_at,
                        score=item.score, time_spent_seconds=item.time_spent_seconds
                    )
                    completed_ids.add(item.lesson_id)

                    experience = GamificationRules.calculate_experience(
                        content.get_lesson_xp_value(item.lesson_id), item.score
                    )
                    streak = GamificationRules.calculate_streak(
                        progress.streak_current, progress.last_activity_date, completed_at
                    )
                    activity_at = completed_at
                    if progress.last_activity_date and progress.last_activity_date > completed_at:
                        activity_at = progress.last_activity_date
                    ProgressStore.apply_completion(
                        progress, experience, streak, item.lesson_id, activity_at, now
                    )
                    total_experience += experience
                    synced += 1
        except IntegrityError as e:
            logger.warning(f"离线同步与并发请求冲突，批次已回滚: user={user_id}")
            raise ConflictError("离线同步与其他请求冲突，请重试", e) from e

        logger.info(
            f"离线同步完成: user={user_id}, synced={synced}, duplicates={skipped_duplicates}, "
            f"unknown={skipped_unknown}, xp+{total_experience}, last_sync={last_sync_timestamp}"
        )
        return {
            "synced_completions": synced,
            "skipped_duplicates": skipped_duplicates,
            "skipped_unknown": skipped_unknown,
            "experience_gained": total_experience,
            "updated_progress": progress,
        }

    @staticmethod
    def adjust_lives(db: Session, user_id: str, lives_change: int) -> UserProgress:
        """
        按增量调整生命值，结果限制在 [0, 上限]

        Args:
            lives_change: 正数增加，负数减少
        """
        ProgressService.get_user_progress(db, user_id)

        with transaction(db):
            progress = ProgressStore.get(db, user_id, for_update=True)
            lives = GamificationRules.clamp_lives(progress.lives_current + lives_change)
            ProgressStore.set_lives(progress, lives, utc_now())

        return progress

    @staticmethod
    def get_progress_summary(
        db: Session,
        user_id: str,
        course_id: Optional[str] = None,
        content: Optional[ContentLookup] = None
    ) -> Dict:
        """
        进度汇总

        - lessons_completed：完成记录条数
        - completion_percentage：已完成的可学习课时 / 可学习课时 × 100，保留 1 位小数；分母为 0 时为 0。
          指定 course_id 时分子分母都只统计该课程
        - average_score：有成绩的记录的平均分，保留 2 位小数；未评分记录不计入，全无成绩时为 0
        - longest_streak：历史上最长的连续自然日数（与当前连续天数无关）
        - courses_started / courses_completed：由内容层级计算
        """
        content = content or SqlContentLookup(db)
        progress = ProgressService.get_user_progress(db, user_id)
        completions = CompletionStore.list_for_user(db, user_id)
        lesson_ids = [c.lesson_id for c in completions]

        # 分子与分母使用相同的过滤条件，已删除课时的完成记录不计入百分比
        completed_in_scope = content.count_active_lessons(lesson_ids, course_id)
        total_lessons = content.get_total_lesson_count(course_id)
        if total_lessons > 0:
            completion_percentage = round(completed_in_scope / total_lessons * 100, 1)
        else:
            completion_percentage = 0

        scores = [c.score for c in completions if c.score is not None]
        average_score = round(sum(scores) / len(scores), 2) if scores else 0

        return {
            "user_id": progress.user_id,
            "experience_points": progress.experience_points,
            "lives_current": progress.lives_current,
            "streak_current": progress.streak_current,
            "lessons_completed": len(completions),
            "completion_percentage": completion_percentage,
            "average_score": average_score,
            "longest_streak": GamificationRules.longest_streak(c.completed_at for c in completions),
            "last_activity_date": progress.last_activity_date,
            "courses_started": len(content.get_course_ids_for_lessons(lesson_ids)),
            "courses_completed": content.count_completed_courses(lesson_ids),
        }

    @staticmethod
    def get_user_lesson_completions(
        db: Session,
        user_id: str,
        page: int = 1,
        limit: Optional[int] = None,
        sort_by: str = "completed_at",
        sort_order: str = "desc"
    ) -> Dict:
        """
        分页获取用户完成记录

        Returns:
            dict: {"data": [...], "pagination": {...}}
        """
        config = get_progress_config()
        page = max(page, 1)
        limit = min(max(limit or config.page_size, 1), config.max_page_size)
        if sort_by not in CompletionStore.SORTABLE_FIELDS:
            raise ValidationError(f"不支持的排序字段: {sort_by}")
        if sort_order not in ("asc", "desc"):
            raise ValidationError(f"不支持的排序方向: {sort_order}")

        result = CompletionStore.page_for_user(db, user_id, page, limit, sort_by, sort_order)
        total = result["total"]
        return {
            "data": result["data"],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "total_pages": math.ceil(total / limit) if total else 0,
                "has_next": page * limit < total,
                "has_prev": page > 1,
            },
        }

    @staticmethod
    def is_lesson_completed(db: Session, user_id: str, lesson_id: str) -> bool:
        return CompletionStore.find(db, user_id, lesson_id) is not None

    @staticmethod
    def get_lesson_completion_stats(db: Session, lesson_id: str) -> Dict:
        """课时完成统计（管理端分析用）"""
        stats = CompletionStore.lesson_stats(db, lesson_id)
        for key in ("average_score", "average_time_spent"):
            if stats[key] is not None:
                stats[key] = round(stats[key], 2)
        return {"lesson_id": lesson_id, **stats}
