"""
Batch queue: accumulates transformed items for one extraction run and
reconciles them against the item store in bounded flushes.

Queue-scoped state (pending items, pending family ids) lives for one
accumulation window and is cleared after every successful flush. The
known-family cache lives for the whole run and is never evicted, so its size
is bounded by the number of distinct family ids in one source file.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

from pipeline.state import Item, Role, StoredItem
from store.base import ItemStoreClient, StoreError

logger = logging.getLogger(__name__)


class QueueState(str, Enum):
    IDLE = "idle"
    FILLING = "filling"
    FLUSHING = "flushing"


@dataclass
class FlushResult:
    ok: bool
    trigger: str
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    synthesized: int = 0
    error: Optional[str] = None


class BatchQueue:
    def __init__(self, run_id: str, client: ItemStoreClient, batch_size: Optional[int] = None):
        self.run_id = run_id
        self.client = client
        self.batch_size = batch_size or client.batch_size
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")

        self.state = QueueState.IDLE
        self.flush_count = 0

        # Dicts keep insertion order, which keeps outbound lists in source order.
        self._pending: Dict[str, Item] = {}
        self._pending_family_ids: Dict[str, None] = {}
        self._families: Dict[str, Union[StoredItem, Item]] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def known_family_count(self) -> int:
        return len(self._families)

    def is_known_family(self, federated_id: str) -> bool:
        return federated_id in self._families

    def _family_refs(self, item: Item) -> Iterable[str]:
        if item.has_role(Role.FAMILY):
            yield item.federated_id
        if item.family_federated_id is not None:
            yield item.family_federated_id

    def add(self, item: Item) -> Optional[FlushResult]:
        """
        Queue an item, flushing first-hand when the batch is full.

        Returns None when no flush ran. A failed threshold flush is logged and
        reported through the returned FlushResult; pending state is kept as it
        was, to be retried by the next flush.
        """
        for family_id in self._family_refs(item):
            if family_id not in self._families:
                self._pending_family_ids[family_id] = None

        # Latest row for an id wins.
        self._pending[item.federated_id] = item
        self.state = QueueState.FILLING

        if len(self._pending) < self.batch_size:
            return None

        try:
            return self.flush(trigger="threshold")
        except StoreError as e:
            logger.error(
                f"({self.run_id}) Could not process records: {e}",
                extra={"run_id": self.run_id, "pending": len(self._pending)},
            )
            return FlushResult(ok=False, trigger="threshold", error=str(e))

    def flush(self, trigger: str = "drain") -> FlushResult:
        """
        Reconcile every pending item with the store and clear the window.

        Raises StoreError when any store call fails. In that case pending items,
        pending family ids and synthesized families are left untouched; only
        families the store confirmed to exist are kept in the cache.
        """
        logger.info(
            f"({self.run_id}) Flushing {len(self._pending)} records from queue",
            extra={"run_id": self.run_id, "trigger": trigger},
        )
        self.state = QueueState.FLUSHING
        try:
            result = self._reconcile(trigger)
        except StoreError:
            self.state = QueueState.FILLING if self._pending else QueueState.IDLE
            raise

        self._pending = {}
        self._pending_family_ids = {}
        self.state = QueueState.IDLE
        self.flush_count += 1
        logger.info(
            f"({self.run_id}) Flushed queue: {result.created} created, {result.updated} updated, "
            f"{result.unchanged} unchanged, {result.synthesized} families synthesized",
            extra={"run_id": self.run_id},
        )
        return result

    def _reconcile(self, trigger: str) -> FlushResult:
        pending_ids = list(self._pending)
        existing = self.client.lookup_by_ids(pending_ids) if pending_ids else {}

        unresolved = [fid for fid in self._pending_family_ids if fid not in self._families]
        if unresolved:
            for fid, stored in self.client.lookup_by_ids(unresolved).items():
                self._families.setdefault(fid, stored)

        synthesized: Dict[str, Item] = {}
        to_create: List[Item] = []
        to_update: List[StoredItem] = []
        unchanged = 0

        for fid in self._pending_family_ids:
            if fid not in self._families:
                family = Item.placeholder_family(fid)
                synthesized[fid] = family
                to_create.append(family)

        for item in self._pending.values():
            stored = existing.get(item.federated_id)
            if stored is not None:
                if item.same_content(stored):
                    unchanged += 1
                else:
                    to_update.append(StoredItem.from_pending(item, stored))
            elif item.federated_id not in self._families and item.federated_id not in synthesized:
                # a family handled above would otherwise be created twice
                to_create.append(item)

        if to_update:
            self.client.update_batch(to_update)
        if to_create:
            self.client.create_batch(to_create)

        self._families.update(synthesized)

        return FlushResult(
            ok=True,
            trigger=trigger,
            created=len(to_create),
            updated=len(to_update),
            unchanged=unchanged,
            synthesized=len(synthesized),
        )
