"""
测试配置
"""
import os
import sys
import pytest

# 添加 src 目录到 Python 路径
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

# 设置测试环境变量（必须在导入 editorial_gate 之前）
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = "test-key"


@pytest.fixture
def test_db():
    """测试数据库 fixture"""
    from sqlmodel import SQLModel
    from editorial_gate.core.database import build_engine, init_db

    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def store(test_db):
    """基于内存数据库的存储"""
    from editorial_gate.services.store import SQLModelStore

    return SQLModelStore(test_db)


@pytest.fixture
def make_article(store):
    """创建文章的工厂"""

    def _make(content: str = "<p>Placeholder.</p>", **fields):
        data = {"title": "Online MBA Programs", "content": content}
        data.update(fields)
        return store.create_article(data)

    return _make
