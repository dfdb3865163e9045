"""
内容查询测试

测试覆盖：
1. 课时存在性与基础经验值
2. 课时总数（全局 / 按课程）
3. 软删除在各层级生效
4. 课程开始数、完成数
"""
import pytest

from lingo.core.errors import NotFoundError
from lingo.models import Course, Lesson, Section
from lingo.services import SqlContentLookup


class TestLessonLookup:
    """课时查询"""

    def test_lesson_exists(self, db_session, seeded_content):
        content = SqlContentLookup(db_session)

        assert content.lesson_exists("course-es-l1") is True
        assert content.lesson_exists("course-es-l99") is False

    def test_xp_value(self, db_session, seeded_content):
        content = SqlContentLookup(db_session)

        assert content.get_lesson_xp_value("course-es-l1") == 10
        assert content.get_lesson_xp_value("course-fr-l2") == 20

    def test_xp_value_unknown_lesson(self, db_session, seeded_content):
        with pytest.raises(NotFoundError):
            SqlContentLookup(db_session).get_lesson_xp_value("nope")


class TestLessonCount:
    """课时统计"""

    def test_total_count(self, db_session, seeded_content):
        content = SqlContentLookup(db_session)

        assert content.get_total_lesson_count() == 10
        assert content.get_total_lesson_count("course-fr") == 2
        assert content.get_total_lesson_count("no-such-course") == 0

    def test_soft_deleted_lesson_excluded(self, db_session, seeded_content):
        db_session.query(Lesson).filter(Lesson.id == "course-es-l1").update({"is_deleted": True})
        db_session.commit()
        content = SqlContentLookup(db_session)

        assert content.get_total_lesson_count() == 9
        assert content.lesson_exists("course-es-l1") is False

    def test_soft_deleted_ancestor_hides_lessons(self, db_session, seeded_content):
        db_session.query(Section).filter(Section.id == "course-fr-s1").update({"is_deleted": True})
        db_session.commit()
        content = SqlContentLookup(db_session)

        assert content.get_total_lesson_count() == 8
        assert content.lesson_exists("course-fr-l1") is False

    def test_soft_deleted_course(self, db_session, seeded_content):
        db_session.query(Course).filter(Course.id == "course-es").update({"is_deleted": True})
        db_session.commit()

        assert SqlContentLookup(db_session).get_total_lesson_count() == 2


class TestCourseProgress:
    """课程层面的统计"""

    def test_course_ids_for_lessons(self, db_session, seeded_content):
        content = SqlContentLookup(db_session)

        assert content.get_course_ids_for_lessons([]) == set()
        assert content.get_course_ids_for_lessons(
            ["course-es-l1", "course-es-l2", "course-fr-l1", "unknown"]
        ) == {"course-es", "course-fr"}

    def test_count_active_lessons(self, db_session, seeded_content):
        content = SqlContentLookup(db_session)
        lesson_ids = ["course-es-l1", "course-es-l2", "course-fr-l1", "unknown"]

        assert content.count_active_lessons(lesson_ids) == 3
        assert content.count_active_lessons(lesson_ids, "course-es") == 2
        assert content.count_active_lessons(lesson_ids, "course-fr") == 1
        assert content.count_active_lessons([], "course-fr") == 0

    def test_count_active_lessons_skips_deleted(self, db_session, seeded_content):
        db_session.query(Lesson).filter(Lesson.id == "course-es-l2").update({"is_deleted": True})
        db_session.commit()
        content = SqlContentLookup(db_session)

        assert content.count_active_lessons(["course-es-l1", "course-es-l2"]) == 1

    def test_count_completed_courses(self, db_session, seeded_content):
        content = SqlContentLookup(db_session)

        assert content.count_completed_courses(["course-fr-l1"]) == 0
        assert content.count_completed_courses(["course-fr-l1", "course-fr-l2"]) == 1
        assert content.count_completed_courses(
            seeded_content["course-es"] + seeded_content["course-fr"]
        ) == 2
