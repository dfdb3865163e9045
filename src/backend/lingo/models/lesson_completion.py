"""
课时完成记录模型
只追加、不修改；(user_id, lesson_id) 唯一
"""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint

from ..core.calendar_days import utc_now
from .base import Base


class LessonCompletion(Base):
    """课时完成记录"""
    __tablename__ = "lesson_completions"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_lesson_completion_user_lesson"),
        CheckConstraint("score IS NULL OR (score >= 0 AND score <= 100)", name="ck_lesson_completion_score"),
        CheckConstraint(
            "time_spent_seconds IS NULL OR time_spent_seconds >= 0",
            name="ck_lesson_completion_time_spent"
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=False, index=True)
    lesson_id = Column(String(36), ForeignKey("lessons.id"), nullable=False, index=True)
    completed_at = Column(DateTime, nullable=False, default=utc_now, index=True)
    score = Column(Integer, nullable=True)  # 0-100，为空表示未评分
    time_spent_seconds = Column(Integer, nullable=True)

    def __repr__(self):
        return f"<LessonCompletion(user='{self.user_id}' lesson='{self.lesson_id}' score={self.score})>"
