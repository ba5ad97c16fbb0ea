"""Database utilities."""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from . import config
from .errors import StorageError


def init_db(db_path: Path | None = None) -> None:
    """Initialize database schema."""
    path = db_path or config.DB_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    # Sites table, one row per directory under the hosting root
    conn.execute("""CREATE TABLE IF NOT EXISTS sites (
        host TEXT PRIMARY KEY,
        type TEXT NOT NULL DEFAULT 'upload' CHECK (type IN ('upload', 'code')),
        deployed_at DATETIME NOT NULL,
        size_bytes INTEGER,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP)""")
    # Settings table, values are JSON documents
    conn.execute("""CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL)""")
    # Operator accounts
    conn.execute("""CREATE TABLE IF NOT EXISTS operators (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP)""")
    # Shared visitor accounts
    conn.execute("""CREATE TABLE IF NOT EXISTS visitors (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT UNIQUE NOT NULL,
        password_hash TEXT NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP)""")
    # Visitor access grants per host
    conn.execute("""CREATE TABLE IF NOT EXISTS access_grants (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        host TEXT NOT NULL,
        visitor_id INTEGER NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (host, visitor_id),
        FOREIGN KEY (visitor_id) REFERENCES visitors(id) ON DELETE CASCADE)""")
    conn.commit()
    conn.close()


def get_db(db_path: Path | None = None) -> sqlite3.Connection:
    """Get a database connection."""
    conn = sqlite3.connect(db_path or config.DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def db(db_path: Path | None = None) -> Generator[sqlite3.Connection, None, None]:
    """Context manager for database connections.

    Commits on success, rolls back on error. sqlite failures surface as
    StorageError.
    """
    try:
        conn = get_db(db_path)
    except sqlite3.Error as e:
        raise StorageError(f"Database unavailable: {e}") from e
    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise StorageError(f"Database error: {e}") from e
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()
