from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from labinventory.core_settings import get_settings
from labinventory.domain.models import Base

config = context.config
# '%' would be read as configparser interpolation
config.set_main_option("sqlalchemy.url", get_settings().database_url.replace("%", "%%"))

# The service configures logging itself when it runs migrations on startup
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()

def _run(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()

def run_migrations_online() -> None:
    # The service passes its own connection in; the CLI opens one
    connection = config.attributes.get("connection")
    if connection is not None:
        _run(connection)
        return
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        _run(connection)

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
