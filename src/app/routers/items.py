from typing import Any, Dict, List
from fastapi import APIRouter, Body, Query
from pipeline.state import Item, StoredItem
from store.memory import default_store

# Stand-in for the Item API, backed by the in-process store. Lets the HTTP
# store client be pointed at this service for local runs.
router = APIRouter(prefix="/items")

@router.get("/byFederatedIds")
def by_federated_ids(federatedIds: str = Query("", description="Comma separated federated ids")):
    ids = [x for x in federatedIds.split(",") if x]
    found = default_store().lookup_by_ids(ids)
    return {"items": [it.to_payload() for it in found.values()]}

@router.post("/batch")
def create_batch(items: List[Item] = Body(..., embed=True)):
    default_store().create_batch(items)
    return {"success": True}

@router.put("/batch")
def update_batch(items: List[StoredItem] = Body(..., embed=True)):
    default_store().update_batch(items)
    return {"success": True}

@router.get("/all")
def all_items() -> Dict[str, Any]:
    return {"items": [it.to_payload() for it in default_store().all()]}
