import logging
import os
from fastapi import FastAPI
from .routers import extract, health, metrics, items

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="Catalog Extract + Item Sync")

app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(metrics.router, prefix="/metrics", tags=["metrics"])
app.include_router(extract.router, prefix="", tags=["extract"])
app.include_router(items.router, tags=["items"])
