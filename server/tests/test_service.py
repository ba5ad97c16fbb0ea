"""Per-host serialization of publish and unpublish."""

import threading

from conftest import make_zip
from sitepilot.models import SiteType
from sitepilot.utils import get_dir_size

ROUNDS = 10


def _run_together(*targets):
    barrier = threading.Barrier(len(targets))
    errors = []

    def run(target):
        barrier.wait(5)
        try:
            target()
        except Exception as e:  # surfaced through the assertion below
            errors.append(e)

    threads = [threading.Thread(target=run, args=(t,)) for t in targets]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(10)
    assert errors == []


def _assert_clean(sites_dir):
    assert [p.name for p in sites_dir.iterdir() if p.name.startswith("_")] == []


def _assert_record_matches_disk(pilot, sites_dir, host):
    site = pilot.registry.get(host)
    live = sites_dir / host
    if site is None:
        assert not live.exists()
    else:
        assert live.is_dir()
        assert site.size_bytes == get_dir_size(live)


class TestConcurrentPublish:
    def test_same_host_ends_with_one_complete_payload(self, pilot, sites_dir):
        code = b"<h1>code</h1>"
        archive = make_zip({"index.html": b"<h1>zip</h1>", "js/app.js": b"console.log(1)"})

        for _ in range(ROUNDS):
            _run_together(
                lambda: pilot.publish("a.test", document=code, kind=SiteType.CODE),
                lambda: pilot.publish("a.test", archive=archive, kind=SiteType.UPLOAD),
            )

            live = sites_dir / "a.test"
            files = sorted(p.relative_to(live).as_posix() for p in live.rglob("*") if p.is_file())
            site = pilot.registry.get("a.test")
            if site.type is SiteType.CODE:
                assert files == ["index.html"]
                assert (live / "index.html").read_bytes() == code
            else:
                assert files == ["index.html", "js/app.js"]
                assert (live / "index.html").read_bytes() == b"<h1>zip</h1>"
            _assert_record_matches_disk(pilot, sites_dir, "a.test")
            _assert_clean(sites_dir)

    def test_publish_racing_unpublish(self, pilot, sites_dir):
        for _ in range(ROUNDS):
            pilot.publish("a.test", document=b"old", kind=SiteType.CODE)

            _run_together(
                lambda: pilot.publish("a.test", document=b"new", kind=SiteType.CODE),
                lambda: pilot.unpublish("a.test"),
            )

            live = sites_dir / "a.test"
            if live.exists():
                assert (live / "index.html").read_bytes() == b"new"
            _assert_record_matches_disk(pilot, sites_dir, "a.test")
            _assert_clean(sites_dir)

    def test_publish_waits_for_the_host_lock(self, pilot, sites_dir):
        pilot.publish("a.test", document=b"old")
        done = threading.Event()

        def writer():
            pilot.publish("a.test", document=b"new", kind=SiteType.CODE)
            done.set()

        with pilot.locks.hold("a.test"):
            thread = threading.Thread(target=writer)
            thread.start()
            assert not done.wait(0.2)
            assert (sites_dir / "a.test" / "index.html").read_bytes() == b"old"
            assert pilot.registry.get("a.test").type is SiteType.UPLOAD

        thread.join(5)
        assert done.is_set()
        assert (sites_dir / "a.test" / "index.html").read_bytes() == b"new"
        assert pilot.registry.get("a.test").type is SiteType.CODE

    def test_other_hosts_are_not_blocked(self, pilot, sites_dir):
        with pilot.locks.hold("a.test"):
            thread = threading.Thread(target=pilot.publish, args=("b.test",), kwargs={"document": b"x"})
            thread.start()
            thread.join(5)
            assert not thread.is_alive()
        assert pilot.registry.get("b.test") is not None
