"""
游戏化规则工具类：经验值、连续学习天数、生命值
"""
import math
from datetime import date, datetime
from typing import Iterable, List, Optional

from .calendar_days import calendar_days_between, distinct_calendar_days
from .config import get_progress_config


class GamificationRules:
    """经验值 / 连续天数 / 生命值计算规则（纯函数，不访问数据库）"""

    # 成绩区间 -> 经验值倍率，按下限从高到低匹配
    SCORE_MULTIPLIERS = (
        (90, 1.2),   # 优秀 +20%
        (80, 1.1),   # 良好 +10%
        (60, 1.0),   # 正常
        (0, 0.8),    # 较差 -20%
    )

    @classmethod
    def score_multiplier(cls, score: Optional[int]) -> float:
        """成绩对应的经验值倍率，未评分时为 1.0"""
        if score is None:
            return 1.0
        for lower_bound, multiplier in cls.SCORE_MULTIPLIERS:
            if score >= lower_bound:
                return multiplier
        return cls.SCORE_MULTIPLIERS[-1][1]

    @classmethod
    def calculate_experience(cls, base_points: int, score: Optional[int] = None) -> int:
        """
        计算一次课时完成获得的经验值

        Args:
            base_points: 课时基础经验值
            score: 成绩（0-100，可选）

        Returns:
            int: 向下取整后的经验值，至少为配置的最小值（默认 1）
        """
        # 先保留 6 位小数再向下取整，避免 x * 1.2 = 11.999999... 之类的浮点误差
        raw = round(base_points * cls.score_multiplier(score), 6)
        return max(get_progress_config().min_experience, math.floor(raw))

    @classmethod
    def calculate_streak(
        cls,
        previous_streak: int,
        last_activity: Optional[datetime],
        now: datetime
    ) -> int:
        """
        计算本次活动后的连续学习天数

        规则：
        - 首次活动：1
        - 同一天（含时钟偏差导致的负间隔）：max(原值, 1)
        - 相隔一天：原值 + 1
        - 相隔超过一天：中断，重新从 1 开始

        Args:
            previous_streak: 当前连续天数
            last_activity: 上次活动时间（可为空）
            now: 本次活动时间

        Returns:
            int: 新的连续天数
        """
        if last_activity is None:
            return 1

        day_gap = calendar_days_between(last_activity, now)
        if day_gap == 0:
            return max(previous_streak, 1)
        if day_gap == 1:
            return previous_streak + 1
        return 1

    @classmethod
    def longest_streak(cls, completed_at: Iterable[Optional[datetime]]) -> int:
        """
        历史上最长的连续自然日数

        同一天的多次完成只算一天。
        """
        days: List[date] = distinct_calendar_days(completed_at)
        if not days:
            return 0

        longest = current = 1
        for previous, day in zip(days, days[1:]):
            if (day - previous).days == 1:
                current += 1
                longest = max(longest, current)
            else:
                current = 1
        return longest

    @classmethod
    def clamp_lives(cls, lives: int) -> int:
        """将生命值限制在 [0, 上限] 之间"""
        return max(0, min(get_progress_config().max_lives, lives))
