import logging
from pathlib import Path
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from onyx_store import config
from onyx_store.errors import StartupError
from onyx_store.models import NOTES_TABLE, UPDATE_TRIGGER_DDL, UPDATE_TRIGGER_NAME, Base

logger = logging.getLogger(__name__)

EXTERNAL_ID_COLUMN = "pb_id"


# PUBLIC_INTERFACE
def resolve_storage_path(data_dir: Path | str | None = None) -> Path:
    """
    Return the full path of the notes database file, creating its directory if needed.

    Preference order for the directory:
    1) the explicit `data_dir` argument
    2) ONYX_DATA_DIR
    3) the platform's per-user application data directory

    Raises StartupError when the directory cannot be determined or created.
    """
    try:
        directory = Path(data_dir).expanduser() if data_dir is not None else config.data_dir()
    except (RuntimeError, KeyError) as exc:
        # Path.home() raises RuntimeError when no home directory can be resolved.
        raise StartupError(f"failed to get app data dir: {exc}") from exc

    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StartupError(f"failed to create app data dir {directory}: {exc}") from exc

    return directory / config.DB_FILENAME


def _sqlite_url(db_path: Path) -> URL:
    return URL.create("sqlite", database=str(db_path))


def create_db_engine(db_path: Path) -> Engine:
    """Engine + connection pool for the notes database file."""
    return create_engine(
        _sqlite_url(db_path),
        pool_pre_ping=True,
        connect_args={
            "timeout": config.busy_timeout_seconds(),
            # Pooled connections are handed to FastAPI's worker threads.
            "check_same_thread": False,
        },
    )


def _has_column(engine: Engine, table: str, column: str) -> bool:
    columns = inspect(engine).get_columns(table)
    return any(c["name"] == column for c in columns)


def _migrate_external_id_column(engine: Engine) -> None:
    """
    Add the pb_id column to notes tables created before external sync existed.

    SQLite has no ADD COLUMN IF NOT EXISTS, so this is check-then-add. A failure is
    logged and startup continues: the usual cause is another process having added the
    column between our check and the ALTER.
    """
    logger.info("Checking migration for %s...", EXTERNAL_ID_COLUMN)
    if _has_column(engine, NOTES_TABLE, EXTERNAL_ID_COLUMN):
        logger.info("Migration skipped: %s already exists.", EXTERNAL_ID_COLUMN)
        return

    logger.info("Applying migration: adding %s column...", EXTERNAL_ID_COLUMN)
    try:
        with engine.begin() as conn:
            conn.exec_driver_sql(f"ALTER TABLE {NOTES_TABLE} ADD COLUMN {EXTERNAL_ID_COLUMN} TEXT")
    except SQLAlchemyError as exc:
        logger.warning("Migration failed: %s", exc)
        try:
            present = _has_column(engine, NOTES_TABLE, EXTERNAL_ID_COLUMN)
        except SQLAlchemyError:
            logger.exception("Could not re-check %s after failed migration.", EXTERNAL_ID_COLUMN)
            return
        if present:
            logger.info("Column %s exists now; it was added concurrently.", EXTERNAL_ID_COLUMN)
        else:
            logger.error(
                "Column %s is still missing; external-id operations will fail until it is added.",
                EXTERNAL_ID_COLUMN,
            )
        return

    logger.info("Migration successful: %s added.", EXTERNAL_ID_COLUMN)


# PUBLIC_INTERFACE
def initialize(db_path: Path) -> Engine:
    """
    Bring the database file at `db_path` to a state ready for note operations.

    Safe to run on every start: creates the file if absent, switches the journal to
    WAL, creates the notes table, adds the pb_id column to older tables, and installs
    the trigger that refreshes updated_at on every row update. Returns the engine
    (connection pool) all note operations share.

    Raises StartupError when the file, the table or the trigger cannot be created.
    Migration failures are logged and tolerated.
    """
    db_path = Path(db_path)
    if not db_path.exists():
        logger.info("Creating database file %s", db_path)
        try:
            db_path.touch()
        except OSError as exc:
            raise StartupError(f"failed to create database file {db_path}: {exc}") from exc

    engine = create_db_engine(db_path)

    try:
        with engine.connect() as conn:
            mode = conn.exec_driver_sql("PRAGMA journal_mode=WAL").scalar()
        logger.info("Database journal mode: %s", mode)

        logger.info("Checking '%s' table...", NOTES_TABLE)
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as exc:
        engine.dispose()
        logger.critical("Failed to create tables: %s", exc)
        raise StartupError(f"Database setup failed: {exc}") from exc

    _migrate_external_id_column(engine)

    try:
        with engine.begin() as conn:
            conn.exec_driver_sql(UPDATE_TRIGGER_DDL)
    except SQLAlchemyError as exc:
        engine.dispose()
        raise StartupError(f"failed to install trigger {UPDATE_TRIGGER_NAME}: {exc}") from exc

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autoflush=False, bind=engine)


# PUBLIC_INTERFACE
def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency that yields a database session and ensures it is closed."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
