"""
课程内容层级模型
Course -> Level -> Section -> Module -> Lesson

由内容管理子系统维护，进度引擎只读不写。
"""
from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..core.calendar_days import utc_now
from .base import Base


class Course(Base):
    """课程"""
    __tablename__ = "courses"

    id = Column(String(36), primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    source_language = Column(String(20), nullable=True)  # BCP-47，如 "es"
    target_language = Column(String(20), nullable=True)
    is_public = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utc_now)
    is_deleted = Column(Boolean, default=False)

    # 关系
    levels = relationship("Level", back_populates="course", order_by="Level.sort_order")

    def __repr__(self):
        return f"<Course(id='{self.id}' title='{self.title}')>"


class Level(Base):
    """级别（如 A1、A2）"""
    __tablename__ = "levels"

    id = Column(String(36), primary_key=True, index=True)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=False, index=True)
    code = Column(String(20), nullable=False)
    name = Column(String(200), nullable=False)
    sort_order = Column(Integer, default=0)
    is_deleted = Column(Boolean, default=False)

    course = relationship("Course", back_populates="levels")
    sections = relationship("Section", back_populates="level", order_by="Section.sort_order")

    def __repr__(self):
        return f"<Level(id='{self.id}' code='{self.code}' course_id='{self.course_id}')>"


class Section(Base):
    """章节"""
    __tablename__ = "sections"

    id = Column(String(36), primary_key=True, index=True)
    level_id = Column(String(36), ForeignKey("levels.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    sort_order = Column(Integer, default=0)
    is_deleted = Column(Boolean, default=False)

    level = relationship("Level", back_populates="sections")
    modules = relationship("Module", back_populates="section", order_by="Module.sort_order")

    def __repr__(self):
        return f"<Section(id='{self.id}' name='{self.name}')>"


class Module(Base):
    """模块"""
    __tablename__ = "modules"

    id = Column(String(36), primary_key=True, index=True)
    section_id = Column(String(36), ForeignKey("sections.id"), nullable=False, index=True)
    module_type = Column(String(20), default="informative")  # informative | basic_lesson | reading | dialogue | exam
    name = Column(String(200), nullable=False)
    sort_order = Column(Integer, default=0)
    is_deleted = Column(Boolean, default=False)

    section = relationship("Section", back_populates="modules")
    lessons = relationship("Lesson", back_populates="module", order_by="Lesson.sort_order")

    def __repr__(self):
        return f"<Module(id='{self.id}' name='{self.name}' type='{self.module_type}')>"


class Lesson(Base):
    """课时 - 进度引擎完成记录的最小单位"""
    __tablename__ = "lessons"

    id = Column(String(36), primary_key=True, index=True)
    module_id = Column(String(36), ForeignKey("modules.id"), nullable=False, index=True)
    name = Column(String(200), nullable=True)
    experience_points = Column(Integer, nullable=False, default=10)  # 基础经验值
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=utc_now)
    is_deleted = Column(Boolean, default=False)

    module = relationship("Module", back_populates="lessons")

    def __repr__(self):
        return f"<Lesson(id='{self.id}' module_id='{self.module_id}' xp={self.experience_points})>"
