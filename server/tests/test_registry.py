"""Tests for SiteRegistry records, reconciliation and health."""

import threading
from contextlib import contextmanager

import pytest

import sitepilot.registry as registry_module
from sitepilot.errors import ValidationError
from sitepilot.locks import HostLocks
from sitepilot.models import HealthStatus, SiteMetadata, SiteType
from sitepilot.registry import SiteRegistry


@pytest.fixture
def locks():
    return HostLocks()


@pytest.fixture
def registry(sites_dir, db_path, locks):
    return SiteRegistry(sites_dir, db_path=db_path, locks=locks)


def _site(host, deployed_at="2026-01-01T00:00:00", kind=SiteType.CODE, size=10):
    return SiteMetadata(host=host, type=kind, deployed_at=deployed_at, size_bytes=size)


class TestRecords:
    def test_upsert_and_get(self, registry):
        registry.upsert(_site("a.test"))
        assert registry.get("a.test") == _site("a.test")

    def test_upsert_replaces(self, registry):
        registry.upsert(_site("a.test"))
        registry.upsert(_site("a.test", deployed_at="2026-02-01T00:00:00", kind=SiteType.UPLOAD, size=99))
        site = registry.get("a.test")
        assert site.type is SiteType.UPLOAD
        assert site.size_bytes == 99

    def test_delete(self, registry):
        registry.upsert(_site("a.test"))
        assert registry.delete("a.test") is True
        assert registry.delete("a.test") is False
        assert registry.get("a.test") is None


class TestReconcile:
    def test_orphan_directory_is_adopted_as_upload(self, registry, sites_dir):
        (sites_dir / "orphan.test").mkdir()
        (sites_dir / "orphan.test" / "index.html").write_bytes(b"hello")

        sites = registry.list()

        assert [s.host for s in sites] == ["orphan.test"]
        assert sites[0].type is SiteType.UPLOAD
        assert sites[0].size_bytes == 5

    def test_record_without_directory_is_dropped(self, registry, sites_dir):
        (sites_dir / "a.test").mkdir()
        registry.upsert(_site("a.test"))
        registry.upsert(_site("gone.test"))

        sites = registry.list()

        assert [s.host for s in sites] == ["a.test"]
        assert registry.get("gone.test") is None

    def test_existing_records_keep_their_type(self, registry, sites_dir):
        (sites_dir / "a.test").mkdir()
        registry.upsert(_site("a.test", kind=SiteType.CODE))
        assert registry.list()[0].type is SiteType.CODE

    def test_reports_changes(self, registry, sites_dir):
        (sites_dir / "new.test").mkdir()
        registry.upsert(_site("old.test"))

        result = registry.reconcile()

        assert result.added == ["new.test"]
        assert result.removed == ["old.test"]

    def test_ignores_files_and_non_hostname_directories(self, registry, sites_dir):
        (sites_dir / "stray.txt").write_text("x")
        (sites_dir / "_staging.abc.a.test").mkdir()
        (sites_dir / "bad name").mkdir()
        assert registry.list() == []

    def test_lists_most_recent_first(self, registry, sites_dir):
        for host in ("old.test", "new.test"):
            (sites_dir / host).mkdir()
        registry.upsert(_site("old.test", deployed_at="2026-01-01T00:00:00"))
        registry.upsert(_site("new.test", deployed_at="2026-03-01T00:00:00"))
        assert [s.host for s in registry.list()] == ["new.test", "old.test"]

    def test_skips_hosts_locked_by_another_thread(self, registry, sites_dir, locks):
        (sites_dir / "busy.test").mkdir()
        held = threading.Event()
        release = threading.Event()

        def writer():
            with locks.hold("busy.test"):
                held.set()
                release.wait(5)

        thread = threading.Thread(target=writer)
        thread.start()
        try:
            held.wait(5)
            assert registry.reconcile().added == []
        finally:
            release.set()
            thread.join()

        assert registry.reconcile().added == ["busy.test"]

    def test_creates_missing_root(self, tmp_path, db_path):
        registry = SiteRegistry(tmp_path / "missing", db_path=db_path)
        assert registry.list() == []
        assert (tmp_path / "missing").is_dir()


class TestHealth:
    def test_online_with_index(self, registry, sites_dir):
        (sites_dir / "a.test").mkdir()
        (sites_dir / "a.test" / "index.html").write_text("x")
        health = registry.health_of("a.test")
        assert health.status is HealthStatus.ONLINE
        assert health.last_check

    def test_offline_without_index(self, registry, sites_dir):
        (sites_dir / "a.test").mkdir()
        assert registry.health_of("a.test").status is HealthStatus.OFFLINE

    def test_offline_without_directory(self, registry):
        assert registry.health_of("missing.test").status is HealthStatus.OFFLINE

    @pytest.mark.parametrize("host", ["", "..", "../etc", "a/b", "bad_host"])
    def test_invalid_host(self, registry, host):
        with pytest.raises(ValidationError):
            registry.health_of(host)

    def test_root_is_never_online(self, registry, sites_dir):
        (sites_dir / "index.html").write_text("x")
        assert registry.health_of(".").status is HealthStatus.OFFLINE


class TestReconcileRaces:
    """A writer finishing between the disk scan and the record read."""

    @pytest.fixture
    def race(self, monkeypatch):
        real_db = registry_module.db

        def install(writer):
            pending = [writer]

            @contextmanager
            def racing_db(*args, **kwargs):
                if pending:
                    thread = threading.Thread(target=pending.pop())
                    thread.start()
                    thread.join(5)
                with real_db(*args, **kwargs) as conn:
                    yield conn

            monkeypatch.setattr(registry_module, "db", racing_db)

        return install

    def test_fresh_deploy_keeps_its_record(self, pilot, sites_dir, race):
        race(lambda: pilot.publish("fresh.test", document=b"x", kind=SiteType.CODE))

        result = pilot.registry.reconcile()

        assert result.removed == []
        assert (sites_dir / "fresh.test").is_dir()
        assert pilot.registry.get("fresh.test").type is SiteType.CODE
        assert [(s.host, s.type) for s in pilot.registry.list()] == [("fresh.test", SiteType.CODE)]

    def test_fresh_removal_is_not_re_adopted(self, pilot, sites_dir, race):
        pilot.publish("gone.test", document=b"x", kind=SiteType.CODE)
        race(lambda: pilot.unpublish("gone.test"))

        result = pilot.registry.reconcile()

        assert result.added == []
        assert not (sites_dir / "gone.test").exists()
        assert pilot.registry.get("gone.test") is None
