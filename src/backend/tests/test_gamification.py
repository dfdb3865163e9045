"""
游戏化规则单元测试

测试覆盖：
1. 经验值倍率与取整
2. 连续学习天数（含时区）
3. 历史最长连续天数
4. 生命值上下限
"""
from datetime import datetime, timezone

import pytest

from lingo.core.config import reset_progress_config
from lingo.core.gamification import GamificationRules


class TestExperience:
    """经验值计算"""

    @pytest.mark.parametrize("score,expected", [
        (95, 12),
        (85, 11),
        (70, 10),
        (45, 8),
        (None, 10),
    ])
    def test_score_bands_for_ten_point_lesson(self, score, expected):
        assert GamificationRules.calculate_experience(10, score) == expected

    @pytest.mark.parametrize("score,multiplier", [
        (100, 1.2), (90, 1.2), (89, 1.1), (80, 1.1),
        (79, 1.0), (60, 1.0), (59, 0.8), (0, 0.8),
    ])
    def test_band_boundaries(self, score, multiplier):
        assert GamificationRules.score_multiplier(score) == multiplier

    def test_result_is_floored(self):
        # 15 * 1.1 = 16.5
        assert GamificationRules.calculate_experience(15, 85) == 16
        # 7 * 0.8 = 5.6
        assert GamificationRules.calculate_experience(7, 10) == 5

    def test_at_least_one_point(self):
        assert GamificationRules.calculate_experience(1, 30) == 1
        assert GamificationRules.calculate_experience(0, None) == 1

    def test_min_experience_is_configurable(self, monkeypatch):
        monkeypatch.setenv("PROGRESS_MIN_EXPERIENCE", "3")
        reset_progress_config()
        assert GamificationRules.calculate_experience(1, 50) == 3


class TestStreak:
    """连续学习天数"""

    def test_first_activity_starts_at_one(self):
        assert GamificationRules.calculate_streak(0, None, datetime(2024, 1, 1, 9)) == 1

    def test_consecutive_days_increment(self):
        assert GamificationRules.calculate_streak(
            1, datetime(2024, 1, 1, 23, 50), datetime(2024, 1, 2, 0, 10)
        ) == 2

    def test_same_day_keeps_value(self):
        assert GamificationRules.calculate_streak(
            3, datetime(2024, 1, 3, 8), datetime(2024, 1, 3, 22)
        ) == 3

    def test_same_day_establishes_at_least_one(self):
        # 例如管理员手动把连续天数改成 0 之后，同一天再次完成
        assert GamificationRules.calculate_streak(
            0, datetime(2024, 1, 3, 8), datetime(2024, 1, 3, 9)
        ) == 1

    def test_gap_resets(self):
        assert GamificationRules.calculate_streak(
            3, datetime(2024, 1, 3, 12), datetime(2024, 1, 5, 12)
        ) == 1

    def test_clock_skew_treated_as_same_day(self):
        assert GamificationRules.calculate_streak(
            4, datetime(2024, 1, 5, 12), datetime(2024, 1, 4, 12)
        ) == 4

    def test_aware_datetimes_are_accepted(self):
        last = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
        now = datetime(2024, 1, 2, 12, tzinfo=timezone.utc)
        assert GamificationRules.calculate_streak(1, last, now) == 2

    def test_reference_timezone_defines_the_day(self, monkeypatch):
        # 15:00 UTC 与 17:00 UTC 在 UTC 下是同一天，在上海时区下跨越了午夜
        last = datetime(2024, 1, 1, 15, 0)
        now = datetime(2024, 1, 1, 17, 0)
        assert GamificationRules.calculate_streak(1, last, now) == 1

        monkeypatch.setenv("PROGRESS_TIMEZONE", "Asia/Shanghai")
        reset_progress_config()
        assert GamificationRules.calculate_streak(1, last, now) == 2


class TestLongestStreak:
    """历史最长连续天数"""

    def test_empty_history(self):
        assert GamificationRules.longest_streak([]) == 0

    def test_longest_run_is_not_the_trailing_run(self):
        days = [1, 2, 3, 6, 7, 8, 9]
        history = [datetime(2024, 1, d, 10) for d in days]
        assert GamificationRules.longest_streak(history) == 4

    def test_earlier_run_can_be_longest(self):
        days = [1, 2, 3, 4, 10, 11]
        history = [datetime(2024, 3, d, 10) for d in days]
        assert GamificationRules.longest_streak(history) == 4

    def test_same_day_counts_once(self):
        history = [
            datetime(2024, 1, 1, 8),
            datetime(2024, 1, 1, 20),
            datetime(2024, 1, 2, 9),
            datetime(2024, 1, 2, 9, 30),
        ]
        assert GamificationRules.longest_streak(history) == 2

    def test_unsorted_input_and_month_boundary(self):
        history = [
            datetime(2024, 3, 1, 10),
            datetime(2024, 2, 28, 10),
            datetime(2024, 2, 29, 10),
        ]
        assert GamificationRules.longest_streak(history) == 3


class TestLives:
    """生命值"""

    @pytest.mark.parametrize("value,expected", [(-3, 0), (0, 0), (7, 7), (10, 10), (15, 10)])
    def test_clamp(self, value, expected):
        assert GamificationRules.clamp_lives(value) == expected
