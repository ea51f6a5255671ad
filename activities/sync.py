"""Sync activity: one full pass of the mirror pipeline.

The activity owns the orchestrator for its lifetime (credentials, HTTP
sessions and the SQLite connection are opened and closed here) and
heartbeats once per finished stage with the stage summary.
"""

from dataclasses import dataclass
from typing import Any, Dict

from temporalio import activity
from temporalio.exceptions import ApplicationError

from core.config import load_settings
from core.observability import with_correlation
from mirror.errors import SyncAlreadyRunningError
from mirror.orchestrator import (
    TRIGGER_MANUAL,
    TRIGGER_SCHEDULED,
    StageResult,
    build_orchestrator,
)


@dataclass
class SyncRunInput:
    """Input for run_mirror_sync.

    Attributes:
        trigger: "scheduled" or "manual"
        full_resync: Ignore checkpoints (always True for scheduled runs)
    """
    trigger: str = TRIGGER_SCHEDULED
    full_resync: bool = True


def _heartbeat(stage: StageResult) -> None:
    activity.heartbeat(stage.to_dict())


@activity.defn
async def run_mirror_sync(input: SyncRunInput) -> Dict[str, Any]:
    """Run every sync stage once.

    Returns:
        Run summary dict (run_id, status, per-stage counts)

    Raises:
        ApplicationError: Manual run failed or was rejected (non-retryable)
    """
    info = activity.info()
    activity.logger.info(
        f"Mirror sync activity started: trigger={input.trigger} full_resync={input.full_resync}"
    )

    orchestrator = build_orchestrator(load_settings())
    try:
        with with_correlation(workflow_id=info.workflow_id, activity_id=info.activity_id, trigger=input.trigger):
            try:
                result = await orchestrator.execute(input.trigger, full_resync=input.full_resync, on_stage=_heartbeat)
            except SyncAlreadyRunningError as e:
                if input.trigger == TRIGGER_MANUAL:
                    raise ApplicationError(str(e), type="SyncAlreadyRunningError", non_retryable=True) from e
                activity.logger.warning(f"Scheduled sync skipped: {e}")
                return {"status": "skipped", "trigger": input.trigger, "reason": str(e)}
    finally:
        await orchestrator.aclose()

    summary = result.to_dict()
    if input.trigger == TRIGGER_MANUAL and not result.succeeded:
        raise ApplicationError(
            result.error_summary() or "sync run did not complete",
            summary,
            type="StageFailedError",
            non_retryable=True,
        )

    activity.logger.info(
        f"Mirror sync activity finished: run {summary['run_id']} {summary['status']} "
        f"({summary['records']} records, {summary['lines']} lines)"
    )
    return summary
