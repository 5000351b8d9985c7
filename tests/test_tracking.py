from datetime import datetime, timedelta
from typing import Dict, Set

import pytest

from safeher.services.tracking import InMemorySessionStore, RedisSessionStore, build_session_store


class FakeRedis:
    """Just enough of the redis-py client for the session store."""

    def __init__(self) -> None:
        self.hashes: Dict[str, Dict[str, str]] = {}
        self.sets: Dict[str, Set[str]] = {}
        self.versions: Dict[str, int] = {}

    def _touch(self, key):
        self.versions[key] = self.versions.get(key, 0) + 1

    def pipeline(self):
        return FakePipeline(self)

    def transaction(self, func, *watches, value_from_callable=False):
        while True:
            seen = {key: self.versions.get(key, 0) for key in watches}
            pipe = FakePipeline(self, immediate=True)
            value = func(pipe)
            if any(self.versions.get(key, 0) != version for key, version in seen.items()):
                continue
            results = pipe.execute()
            return value if value_from_callable else results

    def hset(self, key, mapping):
        self._touch(key)
        self.hashes.setdefault(key, {}).update(mapping)
        return len(mapping)

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def sadd(self, key, *members):
        self._touch(key)
        before = len(self.sets.get(key, set()))
        self.sets.setdefault(key, set()).update(members)
        return len(self.sets[key]) - before

    def srem(self, key, *members):
        self._touch(key)
        current = self.sets.get(key, set())
        removed = len(current & set(members))
        current.difference_update(members)
        return removed

    def smembers(self, key):
        return set(self.sets.get(key, set()))

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if key in self.hashes or key in self.sets:
                self._touch(key)
            removed += int(self.hashes.pop(key, None) is not None)
            removed += int(self.sets.pop(key, None) is not None)
        return removed

    def exists(self, key):
        return int(key in self.hashes or key in self.sets)


class FakePipeline:
    """Queues commands until `execute`; a transaction pipeline runs them directly until `multi`."""

    def __init__(self, client: FakeRedis, immediate: bool = False) -> None:
        self.client = client
        self.immediate = immediate
        self.calls = []

    def multi(self):
        self.immediate = False

    def __getattr__(self, name):
        def queue(*args, **kwargs):
            if self.immediate:
                return getattr(self.client, name)(*args, **kwargs)
            self.calls.append((name, args, kwargs))
            return self

        return queue

    def execute(self):
        results = [getattr(self.client, name)(*args, **kwargs) for name, args, kwargs in self.calls]
        self.calls = []
        return results


class InterleavingRedis(FakeRedis):
    """Runs `on_exists` once, right after the next EXISTS, to interleave another client."""

    def __init__(self) -> None:
        super().__init__()
        self.on_exists = None

    def exists(self, key):
        result = super().exists(key)
        hook, self.on_exists = self.on_exists, None
        if hook:
            hook()
        return result


@pytest.fixture(params=["memory", "redis"])
def store(request):
    if request.param == "memory":
        return InMemorySessionStore()
    return RedisSessionStore(client=FakeRedis())


def test_start_and_get(store):
    session = store.start("e1", "d1")
    assert session.event_id == "e1"
    fetched = store.get("e1")
    assert fetched.device_id == "d1"
    assert fetched.subscribers == set()


def test_start_replaces_existing_session(store):
    store.start("e1", "d1")
    store.add_subscriber("e1", "c1")
    store.start("e1", "d1")
    assert store.list_subscribers("e1") == []


def test_stop(store):
    store.start("e1", "d1")
    assert store.stop("e1") is True
    assert store.get("e1") is None
    assert store.stop("e1") is False


def test_subscribers(store):
    store.start("e1", "d1")
    assert store.add_subscriber("e1", "c2")
    assert store.add_subscriber("e1", "c1")
    assert store.list_subscribers("e1") == ["c1", "c2"]
    assert store.remove_subscriber("e1", "c2")
    assert store.list_subscribers("e1") == ["c1"]


def test_subscriber_changes_without_session_are_rejected(store):
    assert store.add_subscriber("missing", "c1") is False
    assert store.remove_subscriber("missing", "c1") is False
    assert store.list_subscribers("missing") == []


def test_list_all_and_by_device(store):
    store.start("e1", "d1")
    store.start("e2", "d2")
    store.start("e3", "d1")
    assert {s.event_id for s in store.list_all()} == {"e1", "e2", "e3"}
    assert {s.event_id for s in store.list_by_device("d1")} == {"e1", "e3"}


def test_sweep_removes_sessions_older_than_a_day(store):
    store.start("old", "d1")
    store.start("second", "d1")
    now = datetime.utcnow() + timedelta(hours=12)
    old_started = store.get("old").started_at

    assert store.sweep_expired(now=now) == 0
    assert store.sweep_expired(now=old_started + timedelta(hours=24, seconds=1)) == 2
    assert store.list_all() == []


def test_build_session_store_rejects_unknown_backend():
    assert isinstance(build_session_store("memory"), InMemorySessionStore)
    with pytest.raises(ValueError):
        build_session_store("memcached")


def test_memory_store_hands_out_copies():
    store = InMemorySessionStore()
    store.start("e1", "d1")
    snapshot = store.get("e1")

    store.add_subscriber("e1", "c1")
    store.list_all()[0].subscribers.add("intruder")

    assert snapshot.subscribers == set()
    assert store.list_subscribers("e1") == ["c1"]


def test_redis_subscriber_added_while_session_stops_leaves_no_orphan_set():
    fake = InterleavingRedis()
    store = RedisSessionStore(client=fake)
    store.start("e1", "d1")
    fake.on_exists = lambda: store.stop("e1")

    assert store.add_subscriber("e1", "c1") is False
    assert "tracking:subscribers:e1" not in fake.sets
    assert store.get("e1") is None


def test_redis_subscriber_changes_run_in_a_transaction():
    fake = InterleavingRedis()
    store = RedisSessionStore(client=fake)
    store.start("e1", "d1")
    fake.on_exists = lambda: store.add_subscriber("e1", "c0")

    assert store.add_subscriber("e1", "c1") is True
    assert store.list_subscribers("e1") == ["c0", "c1"]
