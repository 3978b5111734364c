import os
import threading
from typing import Any, Dict, List, Optional

# Process-local record of extraction runs, for status lookups and metrics.
# Lost on restart. Holds at most MAX_RUNS entries; the oldest finished runs
# are evicted first, runs still in progress are never dropped.
MAX_RUNS = int(os.getenv("RUN_HISTORY_LIMIT", "1000"))
FINISHED = {"completed", "failed"}

_runs: Dict[str, Dict[str, Any]] = {}
_lock = threading.Lock()

def _evict(keep: str) -> None:
    overflow = len(_runs) - MAX_RUNS
    if overflow <= 0:
        return
    finished = [rid for rid, r in _runs.items() if rid != keep and r.get("status") in FINISHED]
    for rid in finished[:overflow]:
        del _runs[rid]

def record(run_id: str, **fields: Any) -> None:
    with _lock:
        _runs.setdefault(run_id, {"run_id": run_id}).update(fields)
        _evict(keep=run_id)

def get(run_id: str) -> Optional[Dict[str, Any]]:
    with _lock:
        run = _runs.get(run_id)
        return dict(run) if run is not None else None

def all_runs() -> List[Dict[str, Any]]:
    with _lock:
        return [dict(r) for r in _runs.values()]

def summary() -> Dict[str, Any]:
    runs = all_runs()
    by_status: Dict[str, int] = {}
    for r in runs:
        by_status[r.get("status", "unknown")] = by_status.get(r.get("status", "unknown"), 0) + 1
    return {
        "runs": len(runs),
        "by_status": by_status,
        "rows_processed": sum(r.get("rows_processed", 0) for r in runs),
        "rejected": sum(r.get("rejected", 0) for r in runs),
        "known_families": sum(r.get("known_families", 0) for r in runs),
    }

def clear() -> None:
    with _lock:
        _runs.clear()
