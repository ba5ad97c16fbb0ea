"""Staged deployment of site content under the hosting root.

New content is always built in a staging directory next to the live one and
swapped in with renames, so the live directory is either the complete old
site or the complete new one. A failed deploy leaves the old site in place.

Layout of the hosting root::

    sites/
        example.test/            live content for example.test
        _staging.<rand>.<host>/  content being built
        _retired.<hex>.<host>/   previous content, removed after the swap
        _deleted.<hex>.<host>/   content of a removed site, pending deletion

Staging, retired and deleted names start with ``_``, which is never a valid
hostname, so reconciliation does not mistake them for sites.
"""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path

from . import config
from .errors import DeployError, StorageError, ValidationError
from .extract import extract_archive
from .locks import HostLocks
from .models import SiteMetadata, SiteType
from .utils import get_dir_size, is_valid_hostname, now_iso

logger = logging.getLogger(__name__)


class DeploymentManager:
    def __init__(self, sites_dir: Path, locks: HostLocks | None = None):
        self.sites_dir = Path(sites_dir)
        self.locks = locks or HostLocks()

    def site_dir(self, host: str) -> Path:
        """Live directory for ``host``. Raises ValidationError for bad hosts."""
        if not is_valid_hostname(host):
            raise ValidationError("Invalid hostname")
        path = self.sites_dir / host
        # Names like "." collapse onto the root itself
        if path.name != host:
            raise ValidationError("Invalid hostname")
        return path

    def deploy(
        self,
        host: str,
        document: bytes | None = None,
        archive: bytes | None = None,
        kind: SiteType | None = None,
    ) -> SiteMetadata:
        """Replace the content of ``host`` with a single document or an archive.

        Exactly one of ``document`` and ``archive`` must be given. ``kind``
        is the site type to record; it defaults to ``upload``.
        """
        live = self.site_dir(host)
        if (document is None) == (archive is None):
            raise ValidationError("Provide exactly one of a document or an archive")
        kind = kind or SiteType.UPLOAD

        with self.locks.hold(host):
            self.sites_dir.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(
                prefix=config.STAGING_PREFIX, suffix=f".{host}", dir=self.sites_dir,
            ))
            try:
                if document is not None:
                    (staging / config.ENTRY_DOCUMENT).write_bytes(document)
                else:
                    extract_archive(archive, staging)
                # mkdtemp creates 0700 directories; the static server must read them
                staging.chmod(0o755)
                size = get_dir_size(staging)
                self._swap(staging, live)
            except OSError as e:
                raise StorageError(f"Failed to write site {host}: {e}") from e
            finally:
                if staging.exists():
                    shutil.rmtree(staging, ignore_errors=True)

        logger.info("Deployed %s (%s, %d bytes)", host, kind.value, size)
        return SiteMetadata(host=host, type=kind, deployed_at=now_iso(), size_bytes=size)

    def remove(self, host: str) -> bool:
        """Delete the live directory of ``host``. Returns whether it existed."""
        live = self.site_dir(host)
        with self.locks.hold(host):
            if not live.exists():
                return False
            trash = self.sites_dir / f"{config.DELETED_PREFIX}{uuid.uuid4().hex}.{host}"
            try:
                os.rename(live, trash)
            except OSError as e:
                raise StorageError(f"Failed to remove site {host}: {e}") from e
            try:
                shutil.rmtree(trash)
            except OSError as e:
                # The site is already gone; recover() deletes the leftover
                logger.warning("Could not delete %s: %s", trash.name, e)
        logger.info("Removed %s", host)
        return True

    def recover(self) -> None:
        """Clean up after an interrupted deploy.

        Leftover staging directories are deleted. A retired directory whose
        host has no live directory is the last good content and is moved
        back; other retired directories are deleted, as are the remains of
        removed sites.
        """
        if not self.sites_dir.is_dir():
            return
        for entry in self.sites_dir.iterdir():
            if not entry.is_dir():
                continue
            if entry.name.startswith((config.STAGING_PREFIX, config.DELETED_PREFIX)):
                logger.warning("Removing leftover directory %s", entry.name)
                shutil.rmtree(entry, ignore_errors=True)
            elif entry.name.startswith(config.RETIRED_PREFIX):
                parts = entry.name.split(".", 2)
                host = parts[2] if len(parts) == 3 else ""
                live = self.sites_dir / host
                if is_valid_hostname(host) and not live.exists():
                    logger.warning("Restoring %s from interrupted deploy", host)
                    os.rename(entry, live)
                else:
                    shutil.rmtree(entry, ignore_errors=True)

    def _retired_path(self, host: str) -> Path:
        return self.sites_dir / f"{config.RETIRED_PREFIX}{uuid.uuid4().hex}.{host}"

    def _swap(self, staging: Path, live: Path) -> None:
        """Move ``staging`` into place at ``live``.

        rename(2) cannot replace a non-empty directory, so the live directory
        is first moved aside and restored if the second rename fails.
        """
        if not live.exists():
            os.rename(staging, live)
            return
        retired = self._retired_path(live.name)
        os.rename(live, retired)
        try:
            os.rename(staging, live)
        except OSError as e:
            os.rename(retired, live)
            raise DeployError(f"Failed to activate new content for {live.name}: {e}") from e
        shutil.rmtree(retired, ignore_errors=True)
