"""
数据库配置
支持SQLite（开发）和PostgreSQL（生产）

进度引擎的所有写操作都通过 transaction() 事务边界完成：
要么全部提交，要么全部回滚。
"""
import logging
import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .errors import StorageFailure

logger = logging.getLogger(__name__)

# 数据库连接配置
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    "sqlite:///./data/app.db"  # 默认SQLite
)

# 创建引擎
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if "sqlite" in DATABASE_URL else {}
)

# 创建会话工厂
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# 依赖注入
def get_db():
    """数据库会话依赖注入"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    事务边界

    - 正常结束：提交
    - 唯一约束冲突（IntegrityError）：回滚后原样抛出，由调用方映射为业务冲突
    - 其他数据库异常：回滚后包装为 StorageFailure
    - 业务异常：回滚后原样抛出

    Args:
        db: 数据库会话

    Yields:
        Session: 同一个会话
    """
    try:
        yield db
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"数据库事务失败，已回滚: {e}")
        raise StorageFailure("数据库操作失败，请稍后重试", e) from e
    except BaseException:
        db.rollback()
        raise
