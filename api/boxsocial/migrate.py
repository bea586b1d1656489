"""
Startup schema bootstrap.

Migrations are plain ``.sql`` files applied in file-name order. Each file is
written to be idempotent, so every startup replays the whole directory; a
file that fails rolls back on its own and stops the run.
"""

import logging
import time
from pathlib import Path

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from .config import DB_CONNECT_ATTEMPTS, DB_CONNECT_DELAY_SECONDS, MIGRATIONS_DIR
from .database import SessionLocal, transaction

logger = logging.getLogger(__name__)

CONTAINER_MIGRATIONS_DIR = Path("/app/migrations")
PACKAGE_MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"


def candidate_dirs(configured: str = MIGRATIONS_DIR) -> list[Path]:
    # An explicit setting wins outright, even when it points nowhere.
    if configured:
        return [Path(configured)]
    return [CONTAINER_MIGRATIONS_DIR, PACKAGE_MIGRATIONS_DIR]


def resolve_migrations_dir(configured: str = MIGRATIONS_DIR) -> Path:
    candidates = candidate_dirs(configured)
    for path in candidates:
        if path.is_dir():
            return path
    raise FileNotFoundError(f"No migrations directory found in: {', '.join(str(p) for p in candidates)}")


def migration_files(directory: Path) -> list[Path]:
    return sorted((p for p in directory.iterdir() if p.is_file() and p.suffix == ".sql"), key=lambda p: p.name)


def run_migrations(session_factory=SessionLocal, directory: Path | None = None) -> list[str]:
    """Apply every migration file, one transaction per file. Returns the names applied."""
    directory = directory or resolve_migrations_dir()
    applied: list[str] = []
    for path in migration_files(directory):
        with session_factory() as db, transaction(db):
            db.execute(text(path.read_text(encoding="utf-8")))
        applied.append(path.name)
        logger.info("[MIGRATIONS] applied %s", path.name)
    logger.info("[MIGRATIONS] %d file(s) from %s", len(applied), directory)
    return applied


def wait_for_db(
    session_factory=SessionLocal,
    attempts: int = DB_CONNECT_ATTEMPTS,
    delay_seconds: float = DB_CONNECT_DELAY_SECONDS,
) -> int:
    """Block until the database answers ``SELECT 1``. Returns the attempt that succeeded."""
    for attempt in range(1, attempts + 1):
        try:
            with session_factory() as db:
                db.execute(text("SELECT 1"))
            return attempt
        except OperationalError as exc:
            if attempt == attempts:
                logger.error("[DB] unreachable after %d attempts", attempts)
                raise
            logger.warning("[DB] not ready (attempt %d/%d): %s", attempt, attempts, exc.orig)
            time.sleep(delay_seconds)
    raise ValueError("attempts must be at least 1")
