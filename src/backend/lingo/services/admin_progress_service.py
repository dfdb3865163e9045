"""
管理端进度调整服务

奖励经验值与重置进度。权限校验在 API 边界完成，这里不再重复。
"""
import logging

from sqlalchemy.orm import Session

from ..core.calendar_days import utc_now
from ..core.database import transaction
from ..core.errors import ValidationError
from ..models import UserProgress
from .progress_service import ProgressService
from .progress_store import CompletionStore, ProgressStore

logger = logging.getLogger(__name__)


class AdminProgressService:
    """管理端进度调整"""

    @staticmethod
    def grant_bonus(db: Session, target_user_id: str, bonus_points: int, reason: str) -> UserProgress:
        """
        奖励经验值

        不创建完成记录，因此不影响已完成课时数和平均分。
        reason 只用于审计日志。

        Args:
            db: 数据库会话
            target_user_id: 目标用户ID
            bonus_points: 奖励经验值（≥ 0）
            reason: 奖励原因

        Returns:
            UserProgress: 更新后的进度

        Raises:
            ValidationError: 奖励值为负数
        """
        if bonus_points < 0:
            raise ValidationError("奖励经验值不能为负数")

        ProgressService.get_user_progress(db, target_user_id)

        with transaction(db):
            progress = ProgressStore.get(db, target_user_id, for_update=True)
            ProgressStore.add_experience(progress, bonus_points, utc_now())

        logger.info(
            f"奖励经验值: user={target_user_id}, bonus={bonus_points}, "
            f"total={progress.experience_points}, reason={reason}"
        )
        return progress

    @staticmethod
    def reset_progress(db: Session, target_user_id: str) -> UserProgress:
        """
        重置用户进度（不可恢复）

        删除该用户所有完成记录，并将进度恢复为创建时的默认值。
        """
        now = utc_now()
        with transaction(db):
            deleted = CompletionStore.delete_for_user(db, target_user_id)
            progress = ProgressStore.get(db, target_user_id, for_update=True)
            if progress is None:
                progress = ProgressStore.create_default(db, target_user_id, now)
            else:
                ProgressStore.reset(progress, now)

        logger.info(f"用户进度已重置: user={target_user_id}, deleted_completions={deleted}")
        return progress
