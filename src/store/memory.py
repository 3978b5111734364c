# src/store/memory.py
# In-process item store. Backs the mock Item API and local runs when no
# ITEM_API_BASE_URL is configured.
from __future__ import annotations
from typing import Dict, List, Optional, Sequence
import threading
import uuid
from pipeline.state import Item, StoredItem
from .base import ItemStoreClient

class InMemoryItemStore(ItemStoreClient):
    name = "memory"

    def __init__(self, batch_size: int = 100):
        self.batch_size = batch_size
        self._items: Dict[str, StoredItem] = {}
        self._lock = threading.Lock()

    def lookup_by_ids(self, federated_ids: Sequence[str]) -> Dict[str, StoredItem]:
        wanted = set(federated_ids)
        with self._lock:
            return {
                it.federated_id: it.model_copy()
                for it in self._items.values()
                if it.federated_id in wanted
            }

    def create_batch(self, items: List[Item]) -> None:
        with self._lock:
            for it in items:
                new_id = str(uuid.uuid4())
                self._items[new_id] = StoredItem(id=new_id, **it.model_dump(exclude={"id"}))

    def update_batch(self, items: List[StoredItem]) -> None:
        with self._lock:
            for it in items:
                self._items[it.id] = it.model_copy()

    def all(self) -> List[StoredItem]:
        with self._lock:
            return [it.model_copy() for it in self._items.values()]

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

_default: Optional[InMemoryItemStore] = None
_default_lock = threading.Lock()

def default_store() -> InMemoryItemStore:
    global _default
    with _default_lock:
        if _default is None:
            _default = InMemoryItemStore()
        return _default
