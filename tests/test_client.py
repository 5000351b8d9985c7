import requests

from safeher.client import offline_sync
from safeher.client.api_client import SafeHerClient, queue_while_offline, replay_offline_queue
from safeher.client.local_cache import DEVICE_ID_KEY, LocalCache


class OfflineSession:
    """HTTP session that always fails to connect."""

    def request(self, method, url, **kwargs):
        raise requests.ConnectionError(f"cannot reach {url}")


def test_corrupt_cache_reads_as_empty(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("{not json", encoding="utf-8")
    cache = LocalCache(path)

    assert cache.get_device_id() is None
    assert cache.get_cached_contacts() == []
    assert offline_sync.get_offline_queue(cache) == []


def test_device_id_is_stable(tmp_path):
    cache = LocalCache(tmp_path / "cache.json")

    device_id = cache.get_or_create_device_id()

    assert device_id.startswith("device_")
    assert LocalCache(tmp_path / "cache.json").get_or_create_device_id() == device_id
    cache.clear_device_id()
    assert cache.get(DEVICE_ID_KEY) is None


def test_device_info_cache(tmp_path):
    cache = LocalCache(tmp_path / "cache.json")
    assert not cache.is_device_registered()

    cache.cache_device_info({"device_id": "d1", "name": "Asha"})

    assert cache.is_device_registered()
    assert cache.get_cached_device_info()["name"] == "Asha"
    cache.clear_device_info()
    assert cache.get_cached_device_info() is None


def test_contacts_cache(tmp_path):
    cache = LocalCache(tmp_path / "cache.json")

    cache.add_contact_to_cache({"id": 1, "name": "Ravi"})
    cache.add_contact_to_cache({"id": 1, "name": "Ravi again"})
    cache.add_contact_to_cache({"id": 2, "name": "Meera"})
    assert [c["name"] for c in cache.get_cached_contacts()] == ["Ravi", "Meera"]

    cache.remove_contact_from_cache(1)
    assert [c["id"] for c in cache.get_cached_contacts()] == [2]
    cache.clear_contacts_cache()
    assert cache.get_cached_contacts() == []


def test_sync_pending_requests_keeps_failures(tmp_path):
    cache = LocalCache(tmp_path / "cache.json")
    offline_sync.queue_offline_sos(cache, 12.9716, 77.5946, queue_id="q1")
    offline_sync.queue_offline_sos(cache, 1.0, 2.0, queue_id="q2")

    def sync(request):
        if request["queue_id"] == "q2":
            raise RuntimeError("still offline")
        return {"event_id": "e1"}

    assert offline_sync.sync_pending_requests(cache, sync) == {"synced": 1, "failed": 1}
    [pending] = offline_sync.get_pending_requests(cache)
    assert pending["queue_id"] == "q2"
    [done] = [r for r in offline_sync.get_offline_queue(cache) if r["synced"]]
    assert done["event_id"] == "e1"

    offline_sync.clear_offline_queue(cache)
    assert offline_sync.get_offline_queue(cache) == []


def test_queue_while_offline_keeps_local_copy(tmp_path):
    cache = LocalCache(tmp_path / "cache.json")
    client = SafeHerClient(session=OfflineSession())

    request = queue_while_offline(client, cache, 12.9716, 77.5946)

    assert request["queue_id"].startswith("local_")
    assert offline_sync.get_pending_requests(cache) == [request]

    assert replay_offline_queue(client, cache) == {"synced": 0, "failed": 1}
    assert len(offline_sync.get_pending_requests(cache)) == 1


def test_replay_against_running_api(client, tmp_path):
    cache = LocalCache(tmp_path / "cache.json")
    api = SafeHerClient(base_url="http://testserver", session=client)
    device_id = cache.get_or_create_device_id()
    api.register_device(device_id, "Asha", "9999999999")

    request = queue_while_offline(api, cache, 12.9716, 77.5946)
    assert not request["queue_id"].startswith("local_")

    assert replay_offline_queue(api, cache) == {"synced": 1, "failed": 0}
    [event] = client.get("/sos/active", params={"device_id": device_id}).json()
    assert event["trigger_type"] == "offline"
    assert client.get("/offline/pending", params={"device_id": device_id}).json() == []
