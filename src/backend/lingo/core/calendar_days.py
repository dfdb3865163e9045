"""
自然日计算工具

连续学习天数（streak）按"自然日"计算，自然日由配置的参考时区决定。
所有与"哪一天"有关的判断都集中在这里，更换时区策略只需改动此处。

数据库中的时间统一以不带时区的 UTC 存储。
"""
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional

from .config import get_progress_config


def utc_now() -> datetime:
    """当前 UTC 时间（不带时区信息，与数据库存储格式一致）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_storage(value: datetime) -> datetime:
    """将任意时间转换为数据库存储格式（naive UTC）"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def calendar_day(value: datetime) -> date:
    """
    获取时间点在参考时区下所属的自然日

    Args:
        value: 时间点，不带时区信息时视为 UTC

    Returns:
        date: 参考时区下的日期
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(get_progress_config().tzinfo).date()


def calendar_days_between(earlier: datetime, later: datetime) -> int:
    """
    两个时间点之间相差的自然日数

    时钟偏差导致的负数结果按 0（同一天）处理。
    """
    gap = (calendar_day(later) - calendar_day(earlier)).days
    return max(gap, 0)


def distinct_calendar_days(values: Iterable[Optional[datetime]]) -> List[date]:
    """去重并升序排列的自然日列表，忽略空值"""
    return sorted({calendar_day(v) for v in values if v is not None})
