"""Which shared visitor accounts may log into which hosts."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable

from .accounts import AccountStore
from .credentials import verify_password
from .db import db
from .errors import ValidationError
from .utils import is_valid_hostname

logger = logging.getLogger(__name__)


class AccessDecision(str, Enum):
    GRANTED = "granted"
    INVALID = "invalid"  # unknown user or wrong password
    FORBIDDEN = "forbidden"  # valid credentials, no grant for this host


@dataclass(frozen=True)
class GrantUpdate:
    granted: list[str]
    ignored: list[str]

    @property
    def count(self) -> int:
        return len(self.granted)


def _check_host(host: str) -> None:
    if not is_valid_hostname(host):
        raise ValidationError("Invalid hostname")


class AccessGrantStore:
    def __init__(self, visitors: AccountStore, db_path: Path | None = None):
        self.visitors = visitors
        self.db_path = db_path

    def granted_visitors(self, host: str) -> list[str]:
        _check_host(host)
        with db(self.db_path) as conn:
            rows = conn.execute(
                """SELECT v.username FROM access_grants g
                   JOIN visitors v ON v.id = g.visitor_id
                   WHERE g.host = ? ORDER BY v.username""",
                (host,),
            ).fetchall()
        return [r["username"] for r in rows]

    def replace_grants(self, host: str, usernames: Iterable[str]) -> GrantUpdate:
        """Make ``usernames`` the complete visitor list for ``host``.

        Existing grants are dropped first. Names without a visitor account
        are skipped and reported in ``ignored``. Entries that are not strings
        reject the whole update.
        """
        _check_host(host)
        usernames = list(usernames)
        if not all(isinstance(u, str) for u in usernames):
            raise ValidationError("usernames must be strings")
        wanted = list(dict.fromkeys(usernames))
        with db(self.db_path) as conn:
            conn.execute("DELETE FROM access_grants WHERE host = ?", (host,))
            rows = []
            if wanted:
                placeholders = ", ".join("?" for _ in wanted)
                rows = conn.execute(
                    f"SELECT id, username FROM visitors WHERE username IN ({placeholders})",
                    wanted,
                ).fetchall()
            conn.executemany(
                "INSERT INTO access_grants (host, visitor_id) VALUES (?, ?)",
                [(host, r["id"]) for r in rows],
            )

        found = {r["username"] for r in rows}
        granted = [u for u in wanted if u in found]
        ignored = [u for u in wanted if u not in found]
        if ignored:
            logger.warning("Ignoring unknown visitor accounts for %s: %s", host, ", ".join(ignored))
        logger.info("Granted %d visitor(s) access to %s", len(granted), host)
        return GrantUpdate(granted=granted, ignored=ignored)

    def has_grant(self, host: str, username: str) -> bool:
        with db(self.db_path) as conn:
            row = conn.execute(
                """SELECT 1 FROM access_grants g
                   JOIN visitors v ON v.id = g.visitor_id
                   WHERE g.host = ? AND v.username = ?""",
                (host, username),
            ).fetchone()
        return row is not None

    def check(self, host: str, username: str, password: str) -> AccessDecision:
        _check_host(host)
        account = self.visitors.get(username)
        if account is None or not verify_password(password, account.password_hash):
            return AccessDecision.INVALID
        if not self.has_grant(host, username):
            return AccessDecision.FORBIDDEN
        return AccessDecision.GRANTED

    def authorize(self, host: str, username: str, password: str) -> bool:
        return self.check(host, username, password) is AccessDecision.GRANTED
