from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

# alembic.ini puts the project root on sys.path (prepend_sys_path = .)
from app.core.config import settings
from app.db.base import Base
import app.models  # noqa: F401  registers every table on Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# DATABASE_URL wins over anything set in alembic.ini
DATABASE_URL = settings.database_url


def _configure_kwargs(url: str) -> dict:
    kwargs = {"target_metadata": target_metadata, "compare_type": True}
    if url.startswith("sqlite"):
        # SQLite cannot ALTER most constraints in place
        kwargs["render_as_batch"] = True
    return kwargs


def run_migrations_offline() -> None:
    context.configure(
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(DATABASE_URL),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(DATABASE_URL, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs(DATABASE_URL))
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
