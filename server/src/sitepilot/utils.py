"""Utility functions."""
from __future__ import annotations

import re
from datetime import datetime
from pathlib import Path

HOSTNAME_PATTERN = re.compile(r"[A-Za-z0-9.-]+")


def is_valid_hostname(name: object) -> bool:
    """Check that ``name`` is safe to use as a hostname and a directory name.

    Only letters, digits, ``.`` and ``-`` are allowed, and ``..`` is rejected
    anywhere in the string.
    """
    if not isinstance(name, str) or not name:
        return False
    return bool(HOSTNAME_PATTERN.fullmatch(name)) and ".." not in name


def normalize_host(raw_host: str | None) -> str:
    """Strip a ``:port`` suffix from a host header value."""
    return (raw_host or "").split(":")[0].strip()


def get_dir_size(path: str | Path) -> int:
    """Get total size of all files in a directory."""
    return sum(f.stat().st_size for f in Path(path).rglob("*") if f.is_file() and not f.is_symlink())


def now_iso() -> str:
    return datetime.now().isoformat()


def site_url(host: str) -> str:
    return f"http://{host}"
