# src/store/base.py
from typing import Dict, Iterable, List, Sequence
import os
import threading
from pipeline.state import Item, StoredItem

class StoreError(RuntimeError):
    """A call to the remote item store failed."""

class ItemStoreClient:
    """
    Remote item store boundary used by the batch queue.

    lookup_by_ids(ids)   -> {federatedId: StoredItem}, unknown ids are absent
    create_batch(items)  -> None
    update_batch(items)  -> None

    Callers hand over whole logical lists; implementations own chunking to
    the store's wire limit and admission through the outbound limiter.
    """
    name = "base"
    batch_size = 100

    def lookup_by_ids(self, federated_ids: Sequence[str]) -> Dict[str, StoredItem]:
        raise NotImplementedError

    def create_batch(self, items: List[Item]) -> None:
        raise NotImplementedError

    def update_batch(self, items: List[StoredItem]) -> None:
        raise NotImplementedError

def chunked(items: Sequence, size: int) -> Iterable[Sequence]:
    for i in range(0, len(items), size):
        yield items[i:i + size]

def _has_all(names: list[str]) -> bool:
    return all(os.getenv(n) for n in names)

_http_clients: Dict[str, ItemStoreClient] = {}
_http_lock = threading.Lock()

def get_client() -> ItemStoreClient:
    # Prefer the real Item API when it is configured
    if _has_all(["ITEM_API_BASE_URL"]):
        base = os.environ["ITEM_API_BASE_URL"]
        with _http_lock:
            if base not in _http_clients:
                from .http import HttpItemStoreClient
                _http_clients[base] = HttpItemStoreClient.from_env()
            return _http_clients[base]

    from .memory import default_store
    return default_store()
