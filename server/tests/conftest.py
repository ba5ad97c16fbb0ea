"""Shared fixtures: a throwaway hosting root and database per test."""

import io
import zipfile

import pytest
from fastapi.testclient import TestClient

from sitepilot import config
from sitepilot.app import create_app
from sitepilot.db import init_db
from sitepilot.service import SitePilot

ADMIN_TOKEN = "test-admin-token"


def make_zip(entries: dict) -> bytes:
    """Build a ZIP archive in memory from {name: bytes} (names ending in / are dirs)."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in entries.items():
            if name.endswith("/"):
                zf.writestr(zipfile.ZipInfo(name), b"")
            else:
                zf.writestr(name, content)
    return buf.getvalue()


@pytest.fixture
def sites_dir(tmp_path):
    path = tmp_path / "sites"
    path.mkdir()
    return path


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "data.db"
    monkeypatch.setattr(config, "DB_PATH", path)
    init_db(path)
    return path


@pytest.fixture
def pilot(sites_dir, db_path):
    return SitePilot(
        sites_dir=sites_dir,
        db_path=db_path,
        operator_secret="operator-secret",
        visitor_secret="visitor-secret",
    )


@pytest.fixture
def app_config(monkeypatch):
    monkeypatch.setattr(config, "DEV_MODE", False)
    monkeypatch.setattr(config, "ADMIN_TOKEN", ADMIN_TOKEN)
    monkeypatch.setattr(config, "AUTH_ENABLED", False)
    monkeypatch.setattr(config, "AUTH_COOKIE_SECURE", False)
    monkeypatch.setattr(config, "SITE_AUTH_COOKIE_SECURE", False)
    monkeypatch.setattr(config, "MAX_UPLOAD_SIZE", 1024 * 1024)


@pytest.fixture
def client(pilot, app_config):
    return TestClient(create_app(pilot))


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
