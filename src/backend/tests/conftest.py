"""
Pytest 配置和通用 Fixtures

提供内存 SQLite 数据库、课程内容种子数据、内存版内容查询和 API 测试客户端
"""
import os
import sys
from typing import Dict, Iterable, List, Optional, Set

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from lingo.core.config import reset_progress_config  # noqa: E402
from lingo.core.errors import NotFoundError  # noqa: E402
from lingo.models import Base, Course, Level, Section, Module, Lesson  # noqa: E402
from lingo.services import ContentLookup  # noqa: E402


PROGRESS_ENV_VARS = [
    "PROGRESS_TIMEZONE",
    "PROGRESS_DEFAULT_LIVES",
    "PROGRESS_MAX_LIVES",
    "PROGRESS_MIN_EXPERIENCE",
    "PROGRESS_PAGE_SIZE",
    "PROGRESS_MAX_PAGE_SIZE",
]


@pytest.fixture(autouse=True)
def clean_progress_config(monkeypatch):
    """每个测试使用默认配置"""
    for name in PROGRESS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_progress_config()
    yield
    reset_progress_config()


# ==================== 数据库 ====================

@pytest.fixture
def db_engine():
    """内存 SQLite，所有会话共享同一连接"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


# ==================== 课程内容 ====================

def seed_course(db, course_id: str, lesson_xp: List[int]) -> List[str]:
    """
    创建一个 Course -> Level -> Section -> Module -> Lessons 的最小层级

    Returns:
        课时ID列表，形如 "{course_id}-l1"
    """
    db.add(Course(id=course_id, title=f"课程 {course_id}", source_language="en", target_language="es"))
    db.add(Level(id=f"{course_id}-a1", course_id=course_id, code="A1", name="Beginner"))
    db.add(Section(id=f"{course_id}-s1", level_id=f"{course_id}-a1", name="Basics"))
    db.add(Module(id=f"{course_id}-m1", section_id=f"{course_id}-s1", name="Greetings"))

    lesson_ids = []
    for index, xp in enumerate(lesson_xp, start=1):
        lesson_id = f"{course_id}-l{index}"
        db.add(Lesson(
            id=lesson_id,
            module_id=f"{course_id}-m1",
            name=f"Lesson {index}",
            experience_points=xp,
            sort_order=index,
        ))
        lesson_ids.append(lesson_id)

    db.commit()
    return lesson_ids


@pytest.fixture
def seeded_content(db_session) -> Dict[str, List[str]]:
    """
    两门课程共 10 个课时：
    - course-es：8 个课时，每个 10 经验值
    - course-fr：2 个课时，每个 20 经验值
    """
    return {
        "course-es": seed_course(db_session, "course-es", [10] * 8),
        "course-fr": seed_course(db_session, "course-fr", [20, 20]),
    }


# ==================== 内存版内容查询 ====================

class StubContentLookup(ContentLookup):
    """
    内存版 ContentLookup，不依赖内容表
    用于构造数据库里不容易出现的内容状态（例如课时总数为 0）
    """

    def __init__(self, lessons: Optional[Dict[str, int]] = None, total_override: Optional[int] = None):
        self.lessons = lessons or {}
        self.total_override = total_override

    def lesson_exists(self, lesson_id: str) -> bool:
        return lesson_id in self.lessons

    def get_lesson_xp_value(self, lesson_id: str) -> int:
        if lesson_id not in self.lessons:
            raise NotFoundError(f"课时 {lesson_id} 不存在")
        return self.lessons[lesson_id]

    def get_total_lesson_count(self, course_id: Optional[str] = None) -> int:
        if self.total_override is not None:
            return self.total_override
        return len(self.lessons)

    def get_course_ids_for_lessons(self, lesson_ids: Iterable[str]) -> Set[str]:
        return {"stub-course"} if any(i in self.lessons for i in lesson_ids) else set()

    def count_active_lessons(self, lesson_ids: Iterable[str], course_id: Optional[str] = None) -> int:
        return len([i for i in set(lesson_ids) if i in self.lessons])

    def count_completed_courses(self, lesson_ids: Iterable[str]) -> int:
        return 0


@pytest.fixture
def stub_content():
    return StubContentLookup


# ==================== API 客户端 ====================

@pytest.fixture
def client(session_factory, seeded_content):
    """FastAPI 测试客户端，get_db 指向内存数据库"""
    from fastapi.testclient import TestClient
    from main import app
    from lingo.core.database import get_db

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()

