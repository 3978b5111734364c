import logging
import uuid
from typing import Any, Dict, List, Optional
from langgraph.graph import StateGraph, END
from .state import Reject, RunState
from .decode import DecodeError, iter_rows
from .nodes.transform import MissingIdentifierError, transform_row
from .nodes.queue import BatchQueue
from . import runs
from store.base import ItemStoreClient, StoreError, get_client

logger = logging.getLogger(__name__)

def build_graph(queue: BatchQueue):
    """
    extract_rows -> drain_queue -> END, skipping the drain when the source
    could not be decoded.
    """

    def extract_rows(state: RunState) -> Dict[str, Any]:
        rows_processed = 0
        rejects: List[Reject] = []
        failed_flushes = 0
        try:
            # Pull-based: the next row is only decoded after add() (and any
            # flush it triggers) has returned.
            for position, row in enumerate(iter_rows(state.source_path)):
                rows_processed += 1
                try:
                    item = transform_row(row, position)
                except MissingIdentifierError as e:
                    logger.error(
                        f"({state.run_id}) Could not transform record: {e}",
                        extra={"run_id": state.run_id, "position": position},
                    )
                    rejects.append(Reject(position=position, reason=str(e)))
                    continue

                result = queue.add(item)
                if result is not None:
                    if not result.ok:
                        failed_flushes += 1
                    runs.record(state.run_id, rows_processed=rows_processed,
                                known_families=queue.known_family_count)
        except DecodeError as e:
            logger.error(f"({state.run_id}) Extract could not complete: {e}", extra={"run_id": state.run_id})
            return {
                "status": "failed",
                "error": str(e),
                "rows_processed": rows_processed,
                "rejects": rejects,
                "failed_flushes": failed_flushes,
                "flushes": queue.flush_count,
                "known_families": queue.known_family_count,
            }
        return {
            "rows_processed": rows_processed,
            "rejects": rejects,
            "failed_flushes": failed_flushes,
        }

    def drain_queue(state: RunState) -> Dict[str, Any]:
        # Terminal flush runs even with nothing pending.
        try:
            queue.flush(trigger="drain")
        except StoreError as e:
            logger.error(f"({state.run_id}) Final flush failed: {e}", extra={"run_id": state.run_id})
            return {
                "status": "failed",
                "error": str(e),
                "failed_flushes": state.failed_flushes + 1,
                "flushes": queue.flush_count,
                "known_families": queue.known_family_count,
            }
        logger.info(
            f"({state.run_id}) Extract completed! Processed {state.rows_processed} records.",
            extra={"run_id": state.run_id},
        )
        return {
            "status": "completed",
            "flushes": queue.flush_count,
            "known_families": queue.known_family_count,
        }

    def route_after_extract(state: RunState) -> str:
        return "end" if state.status == "failed" else "drain"

    g = StateGraph(RunState)
    g.add_node("extract_rows", extract_rows)
    g.add_node("drain_queue", drain_queue)

    g.set_entry_point("extract_rows")
    g.add_conditional_edges("extract_rows", route_after_extract, {"drain": "drain_queue", "end": END})
    g.add_edge("drain_queue", END)

    return g.compile()

def run_extraction(
    source_path: str,
    run_id: Optional[str] = None,
    batch_size: Optional[int] = None,
    client: Optional[ItemStoreClient] = None,
) -> Dict[str, Any]:
    run_id = run_id or uuid.uuid4().hex
    client = client or get_client()
    queue = BatchQueue(run_id, client, batch_size=batch_size)

    state = RunState(run_id=run_id, source_path=source_path, batch_size=queue.batch_size)
    runs.record(run_id, source_path=source_path, status=state.status, rows_processed=0,
                rejected=0, known_families=0)
    logger.info(f"({run_id}) Extract started", extra={"run_id": run_id, "source_path": source_path})

    app = build_graph(queue)
    try:
        result = app.invoke(state)
    except Exception as e:
        logger.exception(f"({run_id}) Extract aborted: {e}", extra={"run_id": run_id})
        runs.record(run_id, status="failed", error=str(e),
                    known_families=queue.known_family_count)
        raise

    # LangGraph may return a dict; coerce to RunState for attribute access
    final_state = RunState(**result) if isinstance(result, dict) else result

    report = {
        "run_id": run_id,
        "status": final_state.status,
        "counts": {
            "rows_processed": final_state.rows_processed,
            "rejected": len(final_state.rejects),
            "flushes": final_state.flushes,
            "failed_flushes": final_state.failed_flushes,
            "known_families": final_state.known_families,
        },
        "rejects": [r.model_dump() for r in final_state.rejects],
        "error": final_state.error,
    }
    runs.record(
        run_id,
        status=final_state.status,
        rows_processed=final_state.rows_processed,
        rejected=len(final_state.rejects),
        known_families=final_state.known_families,
        error=final_state.error,
    )
    return report
