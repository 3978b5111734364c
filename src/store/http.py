# src/store/http.py
# Item API client matching the ItemStoreClient interface:
#   GET  /items/byFederatedIds?federatedIds=a,b  -> {"items": [...]}
#   POST /items/batch  {"items": [...]}           (create)
#   PUT  /items/batch  {"items": [...]}           (update)
#
# Every request goes through the shared outbound limiter; lists are chunked to
# batch_size and the chunks of one call are dispatched concurrently.

from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging
import os
import httpx
from pipeline.state import Item, StoredItem
from rate_limit.limiter import ConcurrencyLimiter, get_limiter
from .base import ItemStoreClient, StoreError, chunked

logger = logging.getLogger(__name__)


def _env(name: str, default: Optional[str] = None) -> str:
    v = os.getenv(name, default)
    if v is None or v == "":
        raise RuntimeError(f"Missing env var: {name}")
    return v


class HttpItemStoreClient(ItemStoreClient):
    name = "item-api"

    def __init__(
        self,
        base_url: str,
        batch_size: int = 100,
        limiter: Optional[ConcurrencyLimiter] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base = base_url.rstrip("/")
        self.batch_size = batch_size
        self.limiter = limiter or get_limiter("item_api")
        self._http = httpx.Client(
            base_url=self.base,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json", "User-Agent": "catalog-sync/0.1"},
        )

    @classmethod
    def from_env(cls) -> "HttpItemStoreClient":
        return cls(
            base_url=_env("ITEM_API_BASE_URL"),
            batch_size=int(_env("ITEM_API_BATCH_SIZE", "100")),
            timeout=float(_env("ITEM_API_TIMEOUT", "30")),
        )

    def close(self) -> None:
        self._http.close()

    # ---------- transport ----------
    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        with self.limiter():
            try:
                r = self._http.request(method, path, **kwargs)
                r.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise StoreError(f"{method} {path} -> {e.response.status_code}") from e
            except httpx.HTTPError as e:
                raise StoreError(f"{method} {path} failed: {e}") from e
        return r

    def _fan_out(self, items: Sequence, call: Callable[[Sequence], Any]) -> List[Any]:
        chunks = list(chunked(items, self.batch_size))
        if len(chunks) == 1:
            return [call(chunks[0])]
        workers = min(len(chunks), self.limiter.max_concurrent)
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(call, c) for c in chunks]
        # all chunks are issued before any failure is surfaced
        errors = [f.exception() for f in futures if f.exception() is not None]
        if errors:
            raise StoreError(f"{len(errors)} of {len(chunks)} chunks failed: {errors[0]}") from errors[0]
        return [f.result() for f in futures]

    # ---------- public API ----------
    def lookup_by_ids(self, federated_ids: Sequence[str]) -> Dict[str, StoredItem]:
        ids = list(federated_ids)
        if not ids:
            return {}

        def _lookup(chunk: Sequence[str]) -> List[StoredItem]:
            r = self._send("GET", "/items/byFederatedIds", params={"federatedIds": ",".join(chunk)})
            try:
                body = r.json()
            except ValueError as e:
                raise StoreError(f"Malformed lookup response: {e}") from e
            if not isinstance(body, dict) or not isinstance(body.get("items", []), list):
                raise StoreError(f"Malformed lookup response: expected an object with an items list, got {type(body).__name__}")
            try:
                return [StoredItem.model_validate(obj) for obj in body.get("items", [])]
            except (ValueError, TypeError, AttributeError) as e:
                raise StoreError(f"Malformed lookup response: {e}") from e

        found: Dict[str, StoredItem] = {}
        for batch in self._fan_out(ids, _lookup):
            for stored in batch:
                found[stored.federated_id] = stored
        return found

    def create_batch(self, items: List[Item]) -> None:
        if not items:
            return
        self._fan_out(items, lambda chunk: self._send(
            "POST", "/items/batch", json={"items": [it.to_payload() for it in chunk]}))
        logger.debug(f"Created {len(items)} items")

    def update_batch(self, items: List[StoredItem]) -> None:
        if not items:
            return
        self._fan_out(items, lambda chunk: self._send(
            "PUT", "/items/batch", json={"items": [it.to_payload() for it in chunk]}))
        logger.debug(f"Updated {len(items)} items")
