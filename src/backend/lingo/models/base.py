"""
声明式模型基类
"""
from sqlalchemy.orm import declarative_base

Base = declarative_base()
