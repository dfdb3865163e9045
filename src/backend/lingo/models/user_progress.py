"""
用户学习进度模型
每个用户一行，首次读取时按默认值创建
"""
from sqlalchemy import Column, String, Integer, DateTime, CheckConstraint

from ..core.calendar_days import utc_now
from .base import Base


class UserProgress(Base):
    """用户进度：经验值、生命值、连续学习天数"""
    __tablename__ = "user_progress"
    __table_args__ = (
        CheckConstraint("experience_points >= 0", name="ck_user_progress_xp_non_negative"),
        CheckConstraint("lives_current >= 0", name="ck_user_progress_lives_non_negative"),
        CheckConstraint("streak_current >= 0", name="ck_user_progress_streak_non_negative"),
    )

    user_id = Column(String(36), primary_key=True, index=True)  # 用户ID，由认证系统分配
    experience_points = Column(Integer, nullable=False, default=0)
    lives_current = Column(Integer, nullable=False, default=5)
    streak_current = Column(Integer, nullable=False, default=0)
    last_completed_lesson_id = Column(String(36), nullable=True)  # 仅作展示
    last_activity_date = Column(DateTime, nullable=True)  # 最近一次推进连续天数的完成时间
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    def __repr__(self):
        return (
            f"<UserProgress(user_id='{self.user_id}' xp={self.experience_points} "
            f"lives={self.lives_current} streak={self.streak_current})>"
        )
