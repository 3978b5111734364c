import logging
import uuid
from pathlib import Path
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, HTTPException
from pydantic import BaseModel, Field
from pipeline import runs
from pipeline.graph import run_extraction

logger = logging.getLogger(__name__)

router = APIRouter()

class ExtractRequest(BaseModel):
    source_path: str
    batch_size: Optional[int] = Field(default=None, ge=1)
    run_id: Optional[str] = None

@router.post("/extract")
def extract(req: ExtractRequest, background: BackgroundTasks):
    run_id = req.run_id or uuid.uuid4().hex
    if not Path(req.source_path).is_file():
        logger.error(f"({run_id}) Extract was provided no file.", extra={"run_id": run_id})
        raise HTTPException(status_code=404, detail=f"Source not found: {req.source_path}")

    # The run is reported through logs and /extract/{run_id}; the caller only
    # gets the acknowledgment.
    runs.record(run_id, source_path=req.source_path, status="accepted")
    background.add_task(run_extraction, req.source_path, run_id=run_id, batch_size=req.batch_size)
    logger.info(f"({run_id}) Extract launched", extra={"run_id": run_id})
    return {"message": f"Extract {run_id} launched", "run_id": run_id}

@router.get("/extract/{run_id}")
def extract_status(run_id: str):
    run = runs.get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Unknown run: {run_id}")
    return run
