"""
学习进度配置管理模块

统一管理进度与游戏化引擎的配置，支持环境变量。
配置优先级：环境变量 > 默认值
"""

import os
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass
class ProgressConfig:
    """
    进度引擎配置

    Attributes:
        timezone: 计算"自然日"所使用的参考时区（连续学习天数依赖它）
        default_lives: 新建或重置进度时的生命值
        max_lives: 生命值上限
        min_experience: 每次完成课时至少获得的经验值
        page_size: 完成记录分页默认条数
        max_page_size: 完成记录分页最大条数
    """
    timezone: str = "UTC"
    default_lives: int = 5
    max_lives: int = 10
    min_experience: int = 1
    page_size: int = 20
    max_page_size: int = 100

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def validate(self) -> None:
        """检查配置是否合法，不合法时抛出 ValueError"""
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"无效的时区配置: {self.timezone}")
        if self.max_lives < 0:
            raise ValueError("生命值上限不能为负数")
        if not 0 <= self.default_lives <= self.max_lives:
            raise ValueError(
                f"默认生命值 {self.default_lives} 必须位于 [0, {self.max_lives}] 之间"
            )
        if self.min_experience < 0:
            raise ValueError("最小经验值不能为负数")
        if self.page_size <= 0 or self.max_page_size < self.page_size:
            raise ValueError("分页配置无效")


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"环境变量 {name} 必须是整数，当前值: {raw}")


_config: Optional[ProgressConfig] = None


def get_progress_config() -> ProgressConfig:
    """
    从环境变量获取进度引擎配置（首次调用后缓存）

    环境变量：
        PROGRESS_TIMEZONE: 自然日参考时区
        PROGRESS_DEFAULT_LIVES: 初始生命值
        PROGRESS_MAX_LIVES: 生命值上限
        PROGRESS_MIN_EXPERIENCE: 单次完成最少经验值
        PROGRESS_PAGE_SIZE: 分页默认条数
        PROGRESS_MAX_PAGE_SIZE: 分页最大条数

    Returns:
        ProgressConfig 配置对象

    Raises:
        ValueError: 当配置值非法时
    """
    global _config

    if _config is not None:
        return _config

    config = ProgressConfig(
        timezone=os.getenv("PROGRESS_TIMEZONE", "UTC"),
        default_lives=_get_int_env("PROGRESS_DEFAULT_LIVES", 5),
        max_lives=_get_int_env("PROGRESS_MAX_LIVES", 10),
        min_experience=_get_int_env("PROGRESS_MIN_EXPERIENCE", 1),
        page_size=_get_int_env("PROGRESS_PAGE_SIZE", 20),
        max_page_size=_get_int_env("PROGRESS_MAX_PAGE_SIZE", 100),
    )
    config.validate()
    _config = config
    return _config


def reset_progress_config() -> None:
    """清除缓存的配置（测试或热更新环境变量后使用）"""
    global _config
    _config = None
