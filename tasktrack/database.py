import logging
from pathlib import Path

from sqlalchemy import String, event, select, type_coerce
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel, create_engine

from .config import DATABASE_URL
from .timeutil import UTCDateTime, format_timestamp, parse_timestamp

# Import all models to ensure they are registered with SQLModel metadata
from .models import DailyPlanItem, Task, TimeEntry, Update  # noqa: F401

logger = logging.getLogger(__name__)


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    # ON DELETE CASCADE from tasks to updates/time entries needs this per connection.
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def build_engine(url: str = DATABASE_URL):
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
        )
        event.listen(engine, "connect", _set_sqlite_pragmas)
        return engine

    # Other servers: disable pooling and enable pre-ping
    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        poolclass=NullPool,
    )


engine = build_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency to get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """Create all database tables."""
    bind = bind or engine
    if bind.url.get_backend_name() == "sqlite":
        database = bind.url.database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(bind=bind)
    normalize_timestamps(bind)
    logger.info("Database ready at %s", bind.url)


# Same width as timeutil's canonical "%Y-%m-%dT%H:%M:%S.%fZ".
_CANONICAL_LIKE = "____-__-__T__:__:__.______Z"


def normalize_timestamps(bind=None) -> int:
    """Rewrite stored timestamps that are not in the canonical UTC form.

    Older files hold naive ``YYYY-MM-DD HH:MM:SS`` values (or ISO strings
    with other precisions). Reads parse them fine, but SQL filters and
    ORDER BY compare the raw text, so they are rewritten once here.
    Returns the number of values changed.
    """
    bind = bind or engine
    rewritten = 0
    with bind.begin() as conn:
        for table in SQLModel.metadata.sorted_tables:
            for column in table.columns:
                if not isinstance(column.type, UTCDateTime):
                    continue
                raw = type_coerce(column, String)
                rows = conn.execute(
                    select(table.c.id, raw).where(raw.is_not(None), raw.not_like(_CANONICAL_LIKE))
                ).all()
                for row_id, value in rows:
                    parsed = parse_timestamp(value)
                    if parsed is None:
                        continue
                    canonical = format_timestamp(parsed)
                    if canonical == value:
                        continue
                    conn.execute(
                        table.update().where(table.c.id == row_id).values({column.name: canonical})
                    )
                    rewritten += 1
    if rewritten:
        logger.info("Rewrote %d stored timestamps to canonical UTC", rewritten)
    return rewritten
