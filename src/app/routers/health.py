from fastapi import APIRouter
from store.base import get_client

router = APIRouter()

@router.get("/")
def healthcheck():
    return {"ok": True, "store": get_client().name}
