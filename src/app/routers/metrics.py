from fastapi import APIRouter
from pipeline import runs
from rate_limit.limiter import get_limiter

router = APIRouter()

@router.get("/")
def metrics():
    # known_families is the size of each run's never-evicted family cache
    return {**runs.summary(), "limiter": get_limiter("item_api").snapshot()}
