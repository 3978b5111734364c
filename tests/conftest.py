import csv
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from pipeline import runs
from pipeline.state import Item, StoredItem
from store.base import StoreError
from store.memory import InMemoryItemStore, default_store

HEADER = ["familyFederatedId", "optionFederatedId", "title", "details"]


class RecordingStore(InMemoryItemStore):
    """In-memory store that records every call and can be told to fail."""

    def __init__(self, batch_size: int = 100):
        super().__init__(batch_size=batch_size)
        self.calls: List[tuple] = []
        self.fail_on: Optional[str] = None

    def _maybe_fail(self, op: str):
        if self.fail_on == op:
            raise StoreError(f"{op} unavailable")

    def lookup_by_ids(self, federated_ids: Sequence[str]) -> Dict[str, StoredItem]:
        self.calls.append(("lookup", list(federated_ids)))
        self._maybe_fail("lookup")
        return super().lookup_by_ids(federated_ids)

    def create_batch(self, items: List[Item]) -> None:
        self.calls.append(("create", list(items)))
        self._maybe_fail("create")
        super().create_batch(items)

    def update_batch(self, items: List[StoredItem]) -> None:
        self.calls.append(("update", list(items)))
        self._maybe_fail("update")
        super().update_batch(items)

    def calls_of(self, op: str) -> List[list]:
        return [args for name, args in self.calls if name == op]

    def seed(self, *items: Item) -> None:
        super().create_batch(list(items))


@pytest.fixture
def store():
    return RecordingStore()


@pytest.fixture(autouse=True)
def _reset_process_state():
    runs.clear()
    default_store().clear()
    yield
    runs.clear()
    default_store().clear()


@pytest.fixture
def write_csv(tmp_path):
    def _write(rows: List[Dict[str, str]], name: str = "extract.csv") -> str:
        path = tmp_path / name
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=HEADER)
            writer.writeheader()
            for row in rows:
                writer.writerow(row)
        return str(path)
    return _write
