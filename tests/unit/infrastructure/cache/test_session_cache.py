import pytest

from fueltrakr.domain.models.user import AuthSession, User
from fueltrakr.infrastructure.cache.session_cache import SESSION_KEY, DiskSessionStore, MemorySessionStore

SESSION = AuthSession(
    user=User(id="u1", email="porter@example.com", name="Pat Porter", role="porter"),
    access_token="token-1",
    refresh_token="refresh-1",
)


@pytest.fixture
def disk_store(tmp_path):
    store = DiskSessionStore(tmp_path / "session")
    yield store
    store.close()


def test_disk_store_round_trip(disk_store):
    assert disk_store.load() is None

    disk_store.save(SESSION)

    assert disk_store.load() == SESSION


def test_disk_store_survives_reopening(tmp_path):
    first = DiskSessionStore(tmp_path / "session")
    first.save(SESSION)
    first.close()

    second = DiskSessionStore(tmp_path / "session")
    try:
        assert second.load() == SESSION
    finally:
        second.close()


def test_disk_store_clear(disk_store):
    disk_store.save(SESSION)

    disk_store.clear()

    assert disk_store.load() is None


def test_unreadable_session_is_discarded(disk_store):
    disk_store.cache.set(SESSION_KEY, {"user": {"id": "u1"}})

    assert disk_store.load() is None
    assert SESSION_KEY not in disk_store.cache


def test_save_sets_expiry(disk_store):
    disk_store.save(SESSION)

    _, expire_time = disk_store.cache.get(SESSION_KEY, expire_time=True)
    assert expire_time is not None


def test_memory_store():
    store = MemorySessionStore()
    assert store.load() is None

    store.save(SESSION)
    assert store.load() is SESSION

    store.clear()
    assert store.load() is None
