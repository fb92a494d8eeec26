"""
Database connection and session utilities.
Uses SQLAlchemy 2.0 (sync) with psycopg3 driver.
Dialect: postgresql+psycopg:// (sqlite:/// for local runs and tests)
"""

import logging
from pathlib import Path

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import sessionmaker

from classmate.config import settings

logger = logging.getLogger(__name__)

_MIGRATIONS_DIR = Path(__file__).parent.parent / "migrations"


def make_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        # sessions are handed across FastAPI's threadpool
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,  # auto-reconnect on stale connections
        pool_size=5,
        max_overflow=10,
    )


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """FastAPI dependency — yields a DB session, closes on exit."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _split_statements(sql: str) -> list[str]:
    # sqlite3 executes one statement per call
    lines = [ln for ln in sql.splitlines() if not ln.strip().startswith("--")]
    return [s.strip() for s in "\n".join(lines).split(";") if s.strip()]


def run_migrations(bind: Engine | None = None) -> int:
    """Apply every migrations/*.sql file in order. Statements must be idempotent."""
    bind = bind or engine
    files = sorted(_MIGRATIONS_DIR.glob("*.sql"))
    if not files:
        logger.warning("[DB] No migration files found in %s, skipping.", _MIGRATIONS_DIR)
        return 0

    applied = 0
    with bind.begin() as conn:
        for path in files:
            for stmt in _split_statements(path.read_text(encoding="utf-8")):
                conn.execute(text(stmt))
                applied += 1
    logger.info("[DB] Migrations applied (%d statements from %d files).", applied, len(files))
    return applied
