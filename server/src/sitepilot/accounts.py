"""Operator and visitor account storage."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .credentials import hash_password
from .db import db
from .errors import ValidationError

ACCOUNT_TABLES = ("operators", "visitors")


@dataclass(frozen=True)
class Account:
    id: int
    username: str
    password_hash: str


class AccountStore:
    """Username/password-hash rows in one of the account tables."""

    def __init__(self, table: str, db_path: Path | None = None):
        if table not in ACCOUNT_TABLES:
            raise ValueError(f"Unknown account table: {table}")
        self.table = table
        self.db_path = db_path

    def save(self, username: str, password: str) -> Account:
        """Create the account, or replace its password if it exists."""
        username = (username or "").strip()
        if not username or not password:
            raise ValidationError("username and password are required")
        password_hash = hash_password(password)
        with db(self.db_path) as conn:
            conn.execute(
                f"""INSERT INTO {self.table} (username, password_hash) VALUES (?, ?)
                    ON CONFLICT(username) DO UPDATE SET password_hash = excluded.password_hash""",
                (username, password_hash),
            )
            row = conn.execute(
                f"SELECT id, username, password_hash FROM {self.table} WHERE username = ?",
                (username,),
            ).fetchone()
        return Account(id=row["id"], username=row["username"], password_hash=row["password_hash"])

    def get(self, username: str) -> Account | None:
        with db(self.db_path) as conn:
            row = conn.execute(
                f"SELECT id, username, password_hash FROM {self.table} WHERE username = ?",
                (username,),
            ).fetchone()
        if not row:
            return None
        return Account(id=row["id"], username=row["username"], password_hash=row["password_hash"])

    def get_by_id(self, account_id: int | str) -> Account | None:
        with db(self.db_path) as conn:
            row = conn.execute(
                f"SELECT id, username, password_hash FROM {self.table} WHERE id = ?",
                (account_id,),
            ).fetchone()
        if not row:
            return None
        return Account(id=row["id"], username=row["username"], password_hash=row["password_hash"])

    def list(self) -> list[dict]:
        with db(self.db_path) as conn:
            rows = conn.execute(f"SELECT id, username FROM {self.table} ORDER BY username").fetchall()
        return [{"id": r["id"], "username": r["username"]} for r in rows]

    def delete(self, username: str) -> bool:
        with db(self.db_path) as conn:
            row = conn.execute(f"SELECT id FROM {self.table} WHERE username = ?", (username,)).fetchone()
            if not row:
                return False
            if self.table == "visitors":
                conn.execute("DELETE FROM access_grants WHERE visitor_id = ?", (row["id"],))
            conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (row["id"],))
        return True

    def count(self) -> int:
        with db(self.db_path) as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {self.table}").fetchone()[0]
