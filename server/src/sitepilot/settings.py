"""Operator settings stored as JSON values."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from . import config
from .db import db
from .errors import ValidationError


class SettingsStore:
    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path

    def get(self, key: str, default: Any = None) -> Any:
        with db(self.db_path) as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return json.loads(row["value"]) if row else default

    def set(self, key: str, value: Any) -> None:
        with db(self.db_path) as conn:
            conn.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (key, json.dumps(value)),
            )

    def get_allowed_domains(self) -> list[str]:
        return self.get(config.ALLOWED_DOMAINS_KEY, [])

    def set_allowed_domains(self, domains: Any) -> list[str]:
        if not isinstance(domains, list) or not all(isinstance(d, str) for d in domains):
            raise ValidationError("allowedDomains must be an array")
        self.set(config.ALLOWED_DOMAINS_KEY, domains)
        return domains

    def seed_allowed_domains(self, domain: str | None) -> None:
        """Initialize the allowed domains from ``domain`` if never set."""
        if domain and self.get(config.ALLOWED_DOMAINS_KEY) is None:
            self.set(config.ALLOWED_DOMAINS_KEY, [domain])
