"""
进度数据存取

CompletionStore：课时完成记录（只追加，(user_id, lesson_id) 唯一）
ProgressStore：每个用户一行的进度记录

这里的方法只读写会话，不提交；提交与回滚由调用方的 transaction() 负责。
"""
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..core.config import get_progress_config
from ..models import LessonCompletion, UserProgress


class CompletionStore:
    """课时完成记录存取"""

    # 允许排序的字段
    SORTABLE_FIELDS = {
        "completed_at": LessonCompletion.completed_at,
        "score": LessonCompletion.score,
        "time_spent_seconds": LessonCompletion.time_spent_seconds,
    }

    @staticmethod
    def find(db: Session, user_id: str, lesson_id: str) -> Optional[LessonCompletion]:
        """按 (user_id, lesson_id) 查询完成记录"""
        return db.query(LessonCompletion).filter(
            LessonCompletion.user_id == user_id,
            LessonCompletion.lesson_id == lesson_id
        ).first()

    @staticmethod
    def insert(
        db: Session,
        user_id: str,
        lesson_id: str,
        completed_at: datetime,
        score: Optional[int] = None,
        time_spent_seconds: Optional[int] = None
    ) -> LessonCompletion:
        """
        写入完成记录并立即 flush

        flush 让唯一约束冲突在当前事务内立刻暴露为 IntegrityError。
        """
        completion = LessonCompletion(
            user_id=user_id,
            lesson_id=lesson_id,
            completed_at=completed_at,
            score=score,
            time_spent_seconds=time_spent_seconds
        )
        db.add(completion)
        db.flush()
        return completion

    @staticmethod
    def list_for_user(db: Session, user_id: str) -> List[LessonCompletion]:
        """用户的全部完成记录，按完成时间升序"""
        return db.query(LessonCompletion).filter(
            LessonCompletion.user_id == user_id
        ).order_by(LessonCompletion.completed_at.asc()).all()

    @staticmethod
    def lesson_ids_for_user(db: Session, user_id: str) -> List[str]:
        rows = db.query(LessonCompletion.lesson_id).filter(
            LessonCompletion.user_id == user_id
        ).all()
        return [row[0] for row in rows]

    @staticmethod
    def page_for_user(
        db: Session,
        user_id: str,
        page: int,
        limit: int,
        sort_by: str = "completed_at",
        sort_order: str = "desc"
    ) -> Dict:
        """
        分页查询用户完成记录

        Returns:
            dict: {"data": [...], "total": int}
        """
        column = CompletionStore.SORTABLE_FIELDS.get(sort_by, LessonCompletion.completed_at)
        order = column.asc() if sort_order == "asc" else column.desc()

        query = db.query(LessonCompletion).filter(LessonCompletion.user_id == user_id)
        total = query.count()
        data = query.order_by(order, LessonCompletion.id.asc()).offset(
            (page - 1) * limit
        ).limit(limit).all()
        return {"data": data, "total": total}

    @staticmethod
    def lesson_stats(db: Session, lesson_id: str) -> Dict:
        """单个课时的完成统计（平均值只计算非空值）"""
        total, avg_score, avg_time = db.query(
            func.count(LessonCompletion.id),
            func.avg(LessonCompletion.score),
            func.avg(LessonCompletion.time_spent_seconds)
        ).filter(LessonCompletion.lesson_id == lesson_id).one()
        return {
            "total_completions": total or 0,
            "average_score": float(avg_score) if avg_score is not None else None,
            "average_time_spent": float(avg_time) if avg_time is not None else None,
        }

    @staticmethod
    def delete_for_user(db: Session, user_id: str) -> int:
        """删除用户所有完成记录，返回删除条数"""
        return db.query(LessonCompletion).filter(
            LessonCompletion.user_id == user_id
        ).delete(synchronize_session=False)


class ProgressStore:
    """用户进度存取"""

    @staticmethod
    def get(db: Session, user_id: str, for_update: bool = False) -> Optional[UserProgress]:
        """
        查询用户进度

        Args:
            for_update: 是否加行锁（PostgreSQL 下为 SELECT ... FOR UPDATE）
        """
        query = db.query(UserProgress).filter(UserProgress.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def create_default(db: Session, user_id: str, now: datetime) -> UserProgress:
        """按默认值创建进度记录并 flush"""
        progress = UserProgress(
            user_id=user_id,
            experience_points=0,
            lives_current=get_progress_config().default_lives,
            streak_current=0,
            last_completed_lesson_id=None,
            last_activity_date=None,
            updated_at=now
        )
        db.add(progress)
        db.flush()
        return progress

    @staticmethod
    def apply_completion(
        progress: UserProgress,
        experience: int,
        streak: int,
        lesson_id: str,
        activity_at: datetime,
        now: datetime
    ):
        """记录一次课时完成带来的进度变化"""
        progress.experience_points += experience
        progress.streak_current = streak
        progress.last_completed_lesson_id = lesson_id
        progress.last_activity_date = activity_at
        progress.updated_at = now

    @staticmethod
    def add_experience(progress: UserProgress, points: int, now: datetime):
        progress.experience_points += points
        progress.updated_at = now

    @staticmethod
    def set_lives(progress: UserProgress, lives: int, now: datetime):
        progress.lives_current = lives
        progress.updated_at = now

    @staticmethod
    def reset(progress: UserProgress, now: datetime):
        """恢复为创建时的默认值"""
        progress.experience_points = 0
        progress.lives_current = get_progress_config().default_lives
        progress.streak_current = 0
        progress.last_completed_lesson_id = None
        progress.last_activity_date = None
        progress.updated_at = now
