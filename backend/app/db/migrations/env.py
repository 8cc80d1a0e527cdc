# Alembic 驱动脚本，线上/离线模式都能跑
#   cd backend && alembic upgrade head

from __future__ import annotations

from alembic import context
from sqlalchemy import engine_from_config, pool
from logging.config import fileConfig
import logging

from app.core.config import settings
from app.db.base import Base
import app.db.model  # noqa: F401  导入模型，注册 shipping_rules / shipping_ranges


config = context.config
logger = logging.getLogger("alembic.env")


# 用 Settings 覆盖连接串（优先于 ini）
if settings.DATABASE_URL:
    config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)


# 日志：ini 有 logging 段就用；否则降级 basicConfig
try:
    if config.config_file_name:
        fileConfig(config.config_file_name)
    else:
        logging.basicConfig(level=logging.INFO)
except KeyError:
    logging.basicConfig(level=logging.INFO)


# Alembic 的目标元数据（包含所有 ORM 表)
target_metadata = Base.metadata


"""在不连接数据库的情况下生成 SQL（离线模式）"""
def run_migrations_offline():
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
    )

    with context.begin_transaction():
        context.run_migrations()


"""连接数据库直接执行迁移（在线模式）"""
def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        logger.info("alembic.online url=%s", connectable.url.render_as_string(hide_password=True))
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,               # 比较列类型变化（Numeric 精度 / JSONB）
            compare_server_default=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
