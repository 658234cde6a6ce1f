"""
创建数据库表
"""
from editorial_gate.core import get_settings, setup_logging, get_logger
from editorial_gate.core.database import build_engine, init_db

settings = get_settings()

if __name__ == "__main__":
    setup_logging(settings.log_level)
    logger = get_logger(__name__)

    # 文章 / 批注 / 修订记录三张表
    init_db(build_engine(settings.database_url))

    logger.info(f"✅ 数据库表创建完成: {settings.database_url}")
