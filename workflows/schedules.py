"""Temporal schedule for the daily mirror sync."""

from typing import Any, Dict

from temporalio.client import (
    Client,
    Schedule,
    ScheduleActionStartWorkflow,
    ScheduleAlreadyRunningError,
    ScheduleOverlapPolicy,
    SchedulePolicy,
    ScheduleSpec,
    ScheduleState,
    ScheduleUpdate,
    ScheduleUpdateInput,
)

from activities.sync import SyncRunInput
from core.config import Settings
from core.observability import get_logger
from mirror.orchestrator import TRIGGER_SCHEDULED
from workflows.mirror_sync_workflow import MirrorSyncWorkflow

logger = get_logger(__name__)


def build_sync_schedule(settings: Settings) -> Schedule:
    """Daily full resync; a run still in progress makes the next one skip."""
    return Schedule(
        action=ScheduleActionStartWorkflow(
            MirrorSyncWorkflow.run,
            SyncRunInput(trigger=TRIGGER_SCHEDULED, full_resync=True),
            id=f"{settings.sync.schedule_id}-run",
            task_queue=settings.sync.task_queue,
        ),
        spec=ScheduleSpec(cron_expressions=[settings.sync.schedule_cron]),
        policy=SchedulePolicy(overlap=ScheduleOverlapPolicy.SKIP),
        state=ScheduleState(note="Daily Business Central mirror sync"),
    )


async def ensure_sync_schedule(client: Client, settings: Settings) -> Dict[str, Any]:
    """Create the sync schedule, or update it in place if it already exists."""
    schedule_id = settings.sync.schedule_id
    schedule = build_sync_schedule(settings)

    try:
        await client.create_schedule(schedule_id, schedule)
        logger.info(f"Created schedule {schedule_id} ({settings.sync.schedule_cron})")
        return {"status": "created", "schedule_id": schedule_id, "cron": settings.sync.schedule_cron}
    except ScheduleAlreadyRunningError:
        pass

    def _replace(_: ScheduleUpdateInput) -> ScheduleUpdate:
        return ScheduleUpdate(schedule=schedule)

    await client.get_schedule_handle(schedule_id).update(_replace)
    logger.info(f"Updated schedule {schedule_id} ({settings.sync.schedule_cron})")
    return {"status": "updated", "schedule_id": schedule_id, "cron": settings.sync.schedule_cron}
