import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from .schema import SCHEMA_SQL, INDEXES_SQL, SCHEMA_VERSION

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".versecoach"
DB_PATH = CONFIG_DIR / "versecoach.db"

def init_db():
    """Initialize the database by creating tables and indexes if they don't exist."""
    CONFIG_DIR.mkdir(exist_ok=True)
    with get_conn() as conn:
        conn.executescript(SCHEMA_SQL)
        conn.executescript(INDEXES_SQL)
        ensure_verse_learning_phase(conn)
        ensure_verse_starred(conn)
        ensure_collection_drip_days(conn)
        ensure_review_retry_columns(conn)
        ensure_schema_version(conn)
        conn.commit()
    logger.info("Database ready at %s", DB_PATH)

def _columns(conn: sqlite3.Connection, table: str) -> set:
    cursor = conn.cursor()
    cursor.execute(f"PRAGMA table_info({table})")
    return {row[1] for row in cursor.fetchall()}

def ensure_verse_learning_phase(conn: sqlite3.Connection) -> None:
    """Ensure verses table has learning_phase; legacy rows stay NULL and read as mastered."""
    if "learning_phase" not in _columns(conn, "verses"):
        conn.execute("ALTER TABLE verses ADD COLUMN learning_phase TEXT")

def ensure_verse_starred(conn: sqlite3.Connection) -> None:
    """Ensure verses table has starred column for existing installs."""
    if "starred" not in _columns(conn, "verses"):
        conn.execute("ALTER TABLE verses ADD COLUMN starred INTEGER NOT NULL DEFAULT 0")

def ensure_collection_drip_days(conn: sqlite3.Connection) -> None:
    """Ensure collections table has drip_days; older installs only had drip_period."""
    if "drip_days" not in _columns(conn, "collections"):
        conn.execute("ALTER TABLE collections ADD COLUMN drip_days TEXT")

def ensure_review_retry_columns(conn: sqlite3.Connection) -> None:
    """Ensure sessions keep their pending plan and reviews their session position."""
    if "pending" not in _columns(conn, "review_sessions"):
        conn.execute("ALTER TABLE review_sessions ADD COLUMN pending TEXT")
    if "session_position" not in _columns(conn, "reviews"):
        conn.execute("ALTER TABLE reviews ADD COLUMN session_position INTEGER")

def get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the SQLite schema version from PRAGMA user_version."""
    cursor = conn.cursor()
    cursor.execute("PRAGMA user_version")
    row = cursor.fetchone()
    return int(row[0]) if row else 0

def set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    """Set the SQLite schema version via PRAGMA user_version."""
    conn.execute(f"PRAGMA user_version = {int(version)}")

def ensure_schema_version(conn: sqlite3.Connection) -> None:
    """Ensure the current schema version is written to the database."""
    current = get_schema_version(conn)
    if current != SCHEMA_VERSION:
        set_schema_version(conn, SCHEMA_VERSION)

@contextmanager
def get_conn():
    """Context manager for SQLite connection, using row_factory for dict-like rows."""
    conn = sqlite3.connect(DB_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
    finally:
        conn.close()

def get_db():
    """FastAPI dependency that yields a DB connection and closes it afterwards."""
    with get_conn() as conn:
        yield conn
