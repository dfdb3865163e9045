"""
课程内容初始化脚本
从 JSON 文件导入 Course -> Level -> Section -> Module -> Lesson 层级

执行方式：
    cd scripts
    uv run python init_course_data.py [sample_course.json]

说明：
    1. 脚本位于 scripts/ 目录
    2. 后端模块位于 src/backend/ 目录
    3. 脚本会自动添加后端目录到 Python 路径
    4. 脚本会自动切换工作目录到 src/backend/（确保相对路径正常工作）
    5. 已存在的课程（按 id）会被跳过
"""
import sys
import os
import json

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))

# 添加后端目录到 Python 路径，以便导入 lingo.models 等模块
sys.path.insert(0, os.path.join(SCRIPT_DIR, '..', 'src', 'backend'))

# 切换工作目录到后端目录，确保数据库相对路径正常工作
os.chdir(os.path.join(SCRIPT_DIR, '..', 'src', 'backend'))

from sqlalchemy.orm import Session

from lingo.models import Course, Level, Section, Module, Lesson, init_db


def build_course(data: dict) -> Course:
    """
    由 JSON 数据构造课程及其全部下级

    JSON 结构：
        {"id", "title", "source_language", "target_language",
         "levels": [{"id", "code", "name",
                     "sections": [{"id", "name",
                                   "modules": [{"id", "name", "module_type",
                                                "lessons": [{"id", "name", "experience_points"}]}]}]}]}

    未提供 experience_points 的课时使用默认值 10。
    """
    course = Course(
        id=data["id"],
        title=data["title"],
        description=data.get("description"),
        source_language=data.get("source_language"),
        target_language=data.get("target_language"),
        is_public=data.get("is_public", True),
    )

    for level_order, level_data in enumerate(data.get("levels", []), start=1):
        level = Level(
            id=level_data["id"],
            code=level_data["code"],
            name=level_data["name"],
            sort_order=level_order,
        )
        course.levels.append(level)

        for section_order, section_data in enumerate(level_data.get("sections", []), start=1):
            section = Section(id=section_data["id"], name=section_data["name"], sort_order=section_order)
            level.sections.append(section)

            for module_order, module_data in enumerate(section_data.get("modules", []), start=1):
                module = Module(
                    id=module_data["id"],
                    name=module_data["name"],
                    module_type=module_data.get("module_type", "basic_lesson"),
                    sort_order=module_order,
                )
                section.modules.append(module)

                for lesson_order, lesson_data in enumerate(module_data.get("lessons", []), start=1):
                    module.lessons.append(Lesson(
                        id=lesson_data["id"],
                        name=lesson_data.get("name"),
                        experience_points=lesson_data.get("experience_points", 10),
                        sort_order=lesson_order,
                    ))

    return course


def init_course_data(db: Session, courses: list):
    """导入课程，跳过已存在的课程"""
    created = []
    for data in courses:
        if db.query(Course).filter(Course.id == data["id"]).first():
            print(f"⏭️  Course exists, skipped: {data['id']}")
            continue
        course = build_course(data)
        db.add(course)
        created.append(course)

    db.commit()
    print(f"✅ Created {len(created)} courses:")
    for course in created:
        lesson_count = sum(
            len(module.lessons)
            for level in course.levels
            for section in level.sections
            for module in section.modules
        )
        print(f"   - {course.id}: {course.title} ({lesson_count} lessons)")


def main():
    """
    主函数：初始化课程数据
    """
    from lingo.core.database import SessionLocal

    json_path = sys.argv[1] if len(sys.argv) > 1 else os.path.join(SCRIPT_DIR, "sample_course.json")
    with open(json_path, "r", encoding="utf-8") as f:
        payload = json.load(f)
    courses = payload if isinstance(payload, list) else [payload]

    print("🚀 Initializing course data...")

    # 创建数据库表
    print("📋 Creating database tables...")
    init_db()

    db = SessionLocal()
    try:
        init_course_data(db, courses)
        print("✅ Course data initialization completed!")
    except Exception as e:
        print(f"❌ Error initializing course data: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
