"""Persisted site records, kept in line with the hosting root."""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from . import config
from .db import db
from .errors import ValidationError
from .locks import HostLocks
from .models import HealthStatus, ReconcileResult, SiteHealth, SiteMetadata, SiteType
from .utils import get_dir_size, is_valid_hostname, now_iso

logger = logging.getLogger(__name__)


def _row_to_site(row) -> SiteMetadata:
    return SiteMetadata(
        host=row["host"],
        type=SiteType(row["type"]),
        deployed_at=row["deployed_at"],
        size_bytes=row["size_bytes"],
    )


class SiteRegistry:
    """Site records stored in sqlite, reconciled against the filesystem.

    The filesystem wins: directories without a record are adopted as
    ``upload`` sites, records without a directory are dropped.
    """

    def __init__(self, sites_dir: Path, db_path: Path | None = None, locks: HostLocks | None = None):
        self.sites_dir = Path(sites_dir)
        self.db_path = db_path
        self.locks = locks or HostLocks()

    def list(self) -> list[SiteMetadata]:
        self.reconcile()
        with db(self.db_path) as conn:
            rows = conn.execute(
                "SELECT host, type, deployed_at, size_bytes FROM sites ORDER BY deployed_at DESC, host"
            ).fetchall()
        return [_row_to_site(r) for r in rows]

    def get(self, host: str) -> SiteMetadata | None:
        with db(self.db_path) as conn:
            row = conn.execute(
                "SELECT host, type, deployed_at, size_bytes FROM sites WHERE host = ?", (host,)
            ).fetchone()
        return _row_to_site(row) if row else None

    def upsert(self, site: SiteMetadata) -> None:
        with db(self.db_path) as conn:
            conn.execute(
                """INSERT INTO sites (host, type, deployed_at, size_bytes, updated_at)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(host) DO UPDATE SET
                       type = excluded.type,
                       deployed_at = excluded.deployed_at,
                       size_bytes = excluded.size_bytes,
                       updated_at = excluded.updated_at""",
                (site.host, site.type.value, site.deployed_at, site.size_bytes, now_iso()),
            )

    def delete(self, host: str) -> bool:
        with db(self.db_path) as conn:
            cursor = conn.execute("DELETE FROM sites WHERE host = ?", (host,))
        return cursor.rowcount > 0

    def reconcile(self) -> ReconcileResult:
        """Sync records with the directories under the hosting root.

        Each candidate host is re-checked under its lock before its record
        is touched. Hosts with a deploy or removal in progress are left
        alone; the writer records the outcome itself.
        """
        self.sites_dir.mkdir(parents=True, exist_ok=True)
        on_disk = {
            entry.name
            for entry in self.sites_dir.iterdir()
            if entry.is_dir() and not entry.is_symlink() and is_valid_hostname(entry.name)
        }
        with db(self.db_path) as conn:
            known = {r["host"] for r in conn.execute("SELECT host FROM sites").fetchall()}

        added = []
        removed = []
        for host in sorted(on_disk ^ known):
            with self.locks.try_hold(host) as acquired:
                if not acquired:
                    continue
                change = self._reconcile_host(host)
            if change == "added":
                added.append(host)
            elif change == "removed":
                removed.append(host)

        if added or removed:
            logger.info("Reconciled sites: adopted %s, dropped %s", added, removed)
        return ReconcileResult(added=added, removed=removed)

    def _reconcile_host(self, host: str) -> str | None:
        # Caller holds the host lock; the earlier scan may be stale by now
        path = self.sites_dir / host
        has_dir = path.is_dir() and not path.is_symlink()
        with db(self.db_path) as conn:
            has_record = conn.execute("SELECT 1 FROM sites WHERE host = ?", (host,)).fetchone() is not None
            if has_dir and not has_record:
                deployed_at = datetime.fromtimestamp(path.stat().st_mtime).isoformat()
                conn.execute(
                    """INSERT INTO sites (host, type, deployed_at, size_bytes, updated_at)
                       VALUES (?, ?, ?, ?, ?)""",
                    (host, SiteType.UPLOAD.value, deployed_at, get_dir_size(path), now_iso()),
                )
                return "added"
            if has_record and not has_dir:
                conn.execute("DELETE FROM sites WHERE host = ?", (host,))
                return "removed"
        return None

    def health_of(self, host: str) -> SiteHealth:
        if not is_valid_hostname(host):
            raise ValidationError("Invalid hostname")
        site_dir = self.sites_dir / host
        online = site_dir.name == host and site_dir.is_dir() and (site_dir / config.ENTRY_DOCUMENT).is_file()
        return SiteHealth(
            status=HealthStatus.ONLINE if online else HealthStatus.OFFLINE,
            last_check=datetime.now().isoformat(),
        )
