#!/usr/bin/env python3
"""
进度引擎数据库初始化脚本

执行方式：
    cd scripts
    uv run python init_db.py           # 创建缺失的表
    uv run python init_db.py --drop    # 先删除全部表再重建（仅开发环境，会清空进度数据）

数据库地址取自 DATABASE_URL，未设置时使用 src/backend/data/app.db
"""
import argparse
import os
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parent.parent / "src" / "backend"
sys.path.insert(0, str(BACKEND_DIR))

# 默认 SQLite 路径相对于后端目录
os.chdir(str(BACKEND_DIR))
Path("data").mkdir(exist_ok=True)

from lingo.models import Base, drop_all, init_db


def main():
    parser = argparse.ArgumentParser(description="初始化学习进度数据库")
    parser.add_argument("--drop", action="store_true", help="重建前删除所有表")
    args = parser.parse_args()

    if args.drop:
        drop_all()

    init_db()
    print(f"📋 Tables: {', '.join(sorted(Base.metadata.tables.keys()))}")


if __name__ == "__main__":
    main()
