"""
数据库层测试

测试覆盖：
1. transaction() 提交、回滚与异常转换
2. init_db / drop_all 建表与删表
"""
import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError, OperationalError

from lingo.core import database
from lingo.core.database import transaction
from lingo.core.errors import NotFoundError, StorageFailure
from lingo.models import UserProgress, drop_all, init_db


class TestTransaction:
    """事务边界"""

    def test_commit_on_success(self, db_session, session_factory):
        with transaction(db_session):
            db_session.add(UserProgress(user_id="u1", experience_points=3, lives_current=5, streak_current=0))

        other = session_factory()
        try:
            assert other.get(UserProgress, "u1").experience_points == 3
        finally:
            other.close()

    def test_business_error_rolls_back(self, db_session):
        with pytest.raises(NotFoundError):
            with transaction(db_session):
                db_session.add(UserProgress(user_id="u1", experience_points=0, lives_current=5, streak_current=0))
                db_session.flush()
                raise NotFoundError("不存在")

        assert db_session.query(UserProgress).count() == 0

    def test_integrity_error_is_reraised(self, db_session, session_factory):
        with transaction(db_session):
            db_session.add(UserProgress(user_id="u1", experience_points=0, lives_current=5, streak_current=0))

        other = session_factory()
        try:
            with pytest.raises(IntegrityError):
                with transaction(other):
                    other.add(UserProgress(user_id="u1", experience_points=0, lives_current=5, streak_current=0))
                    other.flush()
        finally:
            other.close()

        assert db_session.query(UserProgress).count() == 1

    def test_check_constraint_blocks_negative_experience(self, db_session):
        with pytest.raises(IntegrityError):
            with transaction(db_session):
                db_session.add(UserProgress(user_id="u1", experience_points=-1, lives_current=5, streak_current=0))

    def test_other_database_error_becomes_storage_failure(self, db_session):
        with pytest.raises(StorageFailure) as exc_info:
            with transaction(db_session):
                raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        assert isinstance(exc_info.value.cause, OperationalError)


class TestSchemaHelpers:
    """建表 / 删表"""

    def test_drop_and_recreate(self, db_engine, monkeypatch):
        monkeypatch.setattr(database, "engine", db_engine)

        drop_all()
        assert inspect(db_engine).get_table_names() == []

        init_db()
        tables = set(inspect(db_engine).get_table_names())
        assert {"user_progress", "lesson_completions", "courses", "lessons"} <= tables
