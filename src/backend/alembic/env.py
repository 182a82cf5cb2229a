import sys
from pathlib import Path
from logging.config import fileConfig

from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context

# backend/ をPythonの検索パスに追加
sys.path.append(str(Path(__file__).resolve().parent.parent))

# .envファイルから接続情報を読み込む
from app.core.config import get_settings
settings = get_settings()

# SQLAlchemyモデルをインポートして，Alembicにテーブルの存在を教える．
from app.db import base # app/db/base.py で管理したいモデルを全てインポート済み

config = context.config

# .iniファイルではなく，Settingsから生成したURLをAlembicに設定する
config.set_main_option("sqlalchemy.url", str(settings.DATABASE_URL))

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = base.Base.metadata

# PostGISが作るテーブル（spatial_ref_sysなど）はAlembicの監視対象外
def include_object(object, name, type_, reflected, compare_to):
    if type_ == "table":
        return name == 'alembic_version' or name in target_metadata.tables
    return True

def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            include_object=include_object,
        )

        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
