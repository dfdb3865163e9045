"""
课程内容查询接口

进度引擎通过此接口读取课程层级（课时是否存在、基础经验值、课时总数等），
从不修改内容数据。默认实现 SqlContentLookup 直接查询内容表，
已软删除的内容（自身或任一上级被删除）一律视为不存在。
"""
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Set

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ..core.errors import NotFoundError
from ..models import Course, Level, Section, Module, Lesson


class ContentLookup(ABC):
    """
    内容查询抽象接口

    所有实现都需要继承此类并实现抽象方法。
    """

    @abstractmethod
    def lesson_exists(self, lesson_id: str) -> bool:
        """课时是否存在"""
        pass

    @abstractmethod
    def get_lesson_xp_value(self, lesson_id: str) -> int:
        """
        课时基础经验值

        Raises:
            NotFoundError: 课时不存在
        """
        pass

    @abstractmethod
    def get_total_lesson_count(self, course_id: Optional[str] = None) -> int:
        """可学习的课时总数；指定 course_id 时只统计该课程"""
        pass

    @abstractmethod
    def get_course_ids_for_lessons(self, lesson_ids: Iterable[str]) -> Set[str]:
        """给定课时所属的课程ID集合"""
        pass

    @abstractmethod
    def count_active_lessons(self, lesson_ids: Iterable[str], course_id: Optional[str] = None) -> int:
        """
        给定课时中仍可学习（未被删除）的数量

        与 get_total_lesson_count 使用相同的过滤条件；指定 course_id 时只统计该课程
        """
        pass

    @abstractmethod
    def count_completed_courses(self, lesson_ids: Iterable[str]) -> int:
        """所有课时都在给定集合中的课程数量（没有课时的课程不计入）"""
        pass


class SqlContentLookup(ContentLookup):
    """基于内容表的查询实现"""

    def __init__(self, db: Session):
        self.db = db

    def _active(self, query: Query) -> Query:
        """沿层级连接到课程，并过滤掉任一层级已删除的数据"""
        return query.select_from(Lesson).join(
            Module, Module.id == Lesson.module_id
        ).join(
            Section, Section.id == Module.section_id
        ).join(
            Level, Level.id == Section.level_id
        ).join(
            Course, Course.id == Level.course_id
        ).filter(
            Lesson.is_deleted == False,
            Module.is_deleted == False,
            Section.is_deleted == False,
            Level.is_deleted == False,
            Course.is_deleted == False
        )

    def lesson_exists(self, lesson_id: str) -> bool:
        query = self._active(self.db.query(Lesson.id)).filter(Lesson.id == lesson_id)
        return query.first() is not None

    def get_lesson_xp_value(self, lesson_id: str) -> int:
        row = self._active(
            self.db.query(Lesson.experience_points)
        ).filter(Lesson.id == lesson_id).first()
        if row is None:
            raise NotFoundError(f"课时 {lesson_id} 不存在")
        return int(row[0] or 0)

    def get_total_lesson_count(self, course_id: Optional[str] = None) -> int:
        query = self._active(self.db.query(func.count(Lesson.id)))
        if course_id:
            query = query.filter(Course.id == course_id)
        return query.scalar() or 0

    def get_course_ids_for_lessons(self, lesson_ids: Iterable[str]) -> Set[str]:
        ids = list(set(lesson_ids))
        if not ids:
            return set()
        rows = self._active(
            self.db.query(Course.id)
        ).filter(Lesson.id.in_(ids)).distinct().all()
        return {row[0] for row in rows}

    def count_active_lessons(self, lesson_ids: Iterable[str], course_id: Optional[str] = None) -> int:
        ids = list(set(lesson_ids))
        if not ids:
            return 0
        query = self._active(
            self.db.query(func.count(Lesson.id))
        ).filter(Lesson.id.in_(ids))
        if course_id:
            query = query.filter(Course.id == course_id)
        return query.scalar() or 0

    def count_completed_courses(self, lesson_ids: Iterable[str]) -> int:
        ids = list(set(lesson_ids))
        if not ids:
            return 0

        # 已完成课时按课程分组
        done_rows = self._active(
            self.db.query(Course.id, func.count(Lesson.id))
        ).filter(Lesson.id.in_(ids)).group_by(Course.id).all()
        done: Dict[str, int] = {course_id: count for course_id, count in done_rows}
        if not done:
            return 0

        # 这些课程的课时总数
        total_rows = self._active(
            self.db.query(Course.id, func.count(Lesson.id))
        ).filter(Course.id.in_(list(done.keys()))).group_by(Course.id).all()

        return sum(
            1 for course_id, total in total_rows
            if total > 0 and done.get(course_id, 0) >= total
        )
