import json
import threading

import httpx
import pytest

from pipeline.state import Item, Role, StoredItem
from rate_limit.limiter import ConcurrencyLimiter
from store.base import StoreError
from store.http import HttpItemStoreClient


class FakeItemApi:
    def __init__(self):
        self.requests = []
        self.lock = threading.Lock()
        self.stored = {
            "F1": {"id": "id-f1", "federatedId": "F1", "name": "Shirts",
                   "description": None, "roles": ["FAMILY"]},
        }
        self.fail_status = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self.lock:
            self.requests.append(request)
        if self.fail_status:
            return httpx.Response(self.fail_status, json={"error": "nope"})
        if request.method == "GET" and request.url.path == "/items/byFederatedIds":
            ids = request.url.params["federatedIds"].split(",")
            return httpx.Response(200, json={"items": [self.stored[i] for i in ids if i in self.stored]})
        if request.url.path == "/items/batch":
            return httpx.Response(200, json={"success": True})
        return httpx.Response(404)


def make_client(api, batch_size=2):
    return HttpItemStoreClient(
        "http://items.test",
        batch_size=batch_size,
        limiter=ConcurrencyLimiter(2),
        transport=httpx.MockTransport(api),
    )


def test_lookup_returns_only_found_items():
    api = FakeItemApi()
    client = make_client(api, batch_size=10)
    found = client.lookup_by_ids(["F1", "missing"])

    assert list(found) == ["F1"]
    assert isinstance(found["F1"], StoredItem)
    assert found["F1"].id == "id-f1"
    assert found["F1"].roles == [Role.FAMILY]
    assert api.requests[0].url.params["federatedIds"] == "F1,missing"


def test_lookup_with_no_ids_makes_no_request():
    api = FakeItemApi()
    assert make_client(api).lookup_by_ids([]) == {}
    assert api.requests == []


def test_create_is_chunked_to_batch_size():
    api = FakeItemApi()
    client = make_client(api, batch_size=2)
    items = [Item(federated_id=f"O{i}", roles=[Role.OPTION]) for i in range(5)]
    client.create_batch(items)

    posts = [r for r in api.requests if r.method == "POST"]
    sizes = sorted(len(json.loads(r.content)["items"]) for r in posts)
    assert sizes == [1, 2, 2]
    sent = sorted(i["federatedId"] for r in posts for i in json.loads(r.content)["items"])
    assert sent == [f"O{i}" for i in range(5)]


def test_update_sends_store_ids():
    api = FakeItemApi()
    client = make_client(api)
    client.update_batch([StoredItem(id="id-1", federated_id="O1", name="n", roles=[Role.OPTION])])

    (put,) = [r for r in api.requests if r.method == "PUT"]
    body = json.loads(put.content)
    assert body["items"][0]["id"] == "id-1"
    assert body["items"][0]["federatedId"] == "O1"


def test_http_errors_become_store_errors():
    api = FakeItemApi()
    api.fail_status = 503
    client = make_client(api)
    with pytest.raises(StoreError):
        client.lookup_by_ids(["F1"])
    with pytest.raises(StoreError):
        client.create_batch([Item(federated_id=f"O{i}", roles=[Role.OPTION]) for i in range(3)])
    # every chunk was still issued
    assert len([r for r in api.requests if r.method == "POST"]) == 2


def test_from_env(monkeypatch):
    monkeypatch.setenv("ITEM_API_BASE_URL", "http://items.example/")
    monkeypatch.setenv("ITEM_API_BATCH_SIZE", "25")
    client = HttpItemStoreClient.from_env()
    assert client.base == "http://items.example"
    assert client.batch_size == 25
    client.close()
