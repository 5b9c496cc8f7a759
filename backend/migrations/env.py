from __future__ import annotations
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
import os, sys
from dotenv import load_dotenv

# dfs_portal lives one level up (backend/)
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dfs_portal.models.authz import Base  # noqa: E402
import dfs_portal.models.user_profile  # noqa: E402,F401
import dfs_portal.models.audit  # noqa: E402,F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

load_dotenv()

DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
config.set_main_option('sqlalchemy.url', DATABASE_URL)

target_metadata = Base.metadata


def _configure_kwargs(url: str):
    # SQLite cannot ALTER columns in place; batch mode recreates the table
    return {
        'target_metadata': target_metadata,
        'compare_type': True,
        'render_as_batch': url.startswith('sqlite'),
    }


def run_migrations_offline():
    url = config.get_main_option('sqlalchemy.url')
    context.configure(url=url, literal_binds=True, **_configure_kwargs(url))
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix='sqlalchemy.',
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs(DATABASE_URL))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
