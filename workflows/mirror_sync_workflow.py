"""Mirror Sync Workflow.

Started by the daily schedule (trigger="scheduled", full resync) or on
demand (trigger="manual"). The activity is attempted exactly once: a failed
run is surfaced, not retried, and the next scheduled run starts fresh.
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError

with workflow.unsafe.imports_passed_through():
    from activities.sync import run_mirror_sync, SyncRunInput
    from mirror.orchestrator import TRIGGER_SCHEDULED


SYNC_ACTIVITY_TIMEOUT = timedelta(hours=6)


@workflow.defn
class MirrorSyncWorkflow:
    """Runs one mirror sync pass.

    Scheduled runs never fail the workflow: stage failures are already in the
    summary and an activity error is logged and returned as a failed summary.
    Manual runs fail the workflow when the activity fails.
    """

    @workflow.run
    async def run(self, input: SyncRunInput) -> dict:
        workflow.logger.info(f"Starting mirror sync ({input.trigger}, full_resync={input.full_resync})")

        try:
            summary = await workflow.execute_activity(
                run_mirror_sync,
                input,
                start_to_close_timeout=SYNC_ACTIVITY_TIMEOUT,
                retry_policy=RetryPolicy(maximum_attempts=1),
            )
        except ActivityError as e:
            if input.trigger != TRIGGER_SCHEDULED:
                raise
            cause = e.cause or e
            workflow.logger.error(f"Scheduled mirror sync failed: {cause}")
            return {"status": "failed", "trigger": input.trigger, "error": str(cause)}

        workflow.logger.info(f"Mirror sync finished: {summary.get('status')}")
        return summary
