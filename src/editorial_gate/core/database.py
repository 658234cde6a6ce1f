"""
数据库连接管理 - 统一管理数据库连接
"""
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from editorial_gate.core.config import get_settings


def build_engine(database_url: str):
    """根据 URL 创建引擎，内存 SQLite 需要共享同一个连接"""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, echo=False)

    connect_args = {"check_same_thread": False}
    database = make_url(database_url).database
    if not database or database == ":memory:":
        return create_engine(
            database_url,
            echo=False,
            connect_args=connect_args,
            poolclass=StaticPool,
        )

    # 文件型 SQLite：确保目录存在
    Path(database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, echo=False, connect_args=connect_args)


# 创建全局数据库引擎
_settings = get_settings()
engine = build_engine(_settings.database_url)


def init_db(bind=None) -> None:
    """创建所有表"""
    # 导入模型以注册元数据
    from editorial_gate import models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


__all__ = ["engine", "build_engine", "init_db"]
