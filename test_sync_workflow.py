"""
Temporal Sync Tests

The sync activity under temporalio's ActivityEnvironment (no server
needed) and the daily schedule definition.
"""

import asyncio
import tempfile
from datetime import timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from temporalio.client import ScheduleAlreadyRunningError, ScheduleOverlapPolicy
from temporalio.exceptions import ApplicationError
from temporalio.testing import ActivityEnvironment

from activities.sync import SyncRunInput, run_mirror_sync
from connectors.business_central.bc_client import FetchError, TransportError
from core.config import Settings
from core.observability.metrics import MetricsCollector
from mirror import transforms
from mirror.models import Customer, Vendor
from mirror.orchestrator import SyncOrchestrator
from mirror.stages import SourceBinding, StageDescriptor
from mirror.store import MirrorStore
from workflows.schedules import build_sync_schedule, ensure_sync_schedule


@pytest.fixture(autouse=True)
def fresh_metrics():
    MetricsCollector.reset()
    yield
    MetricsCollector.reset()


@pytest.fixture
def store():
    with tempfile.TemporaryDirectory() as tmp:
        s = MirrorStore(Path(tmp) / "mirror.db")
        s.init_schema()
        yield s
        s.close()


def feed(*records, error=None):
    async def fetch(modified_since=None):
        for record in records:
            yield record
        if error is not None:
            raise error
    return fetch


def make_orchestrator(store, vendors_fail=False):
    vendor_error = None
    if vendors_fail:
        vendor_error = FetchError("v2.0", "vendors", TransportError("HTTP 500", 500, "boom"))
    stages = [
        StageDescriptor(
            "customers", Customer,
            [SourceBinding("v2.0", feed({"id": "cust-1", "number": "C001"}), transforms.transform_v2_customer)],
            store.upsert,
        ),
        StageDescriptor(
            "vendors", Vendor,
            [SourceBinding("v2.0", feed({"id": "vend-1", "number": "V001"}, error=vendor_error),
                           transforms.transform_v2_vendor)],
            store.upsert,
        ),
    ]
    return SyncOrchestrator(store, stages)


def run_activity(orchestrator, input, heartbeats=None):
    env = ActivityEnvironment()
    if heartbeats is not None:
        env.on_heartbeat = lambda *details: heartbeats.append(details[0])

    with patch("activities.sync.load_settings", return_value=Settings()), \
            patch("activities.sync.build_orchestrator", return_value=orchestrator):
        return asyncio.run(env.run(run_mirror_sync, input))


class TestSyncActivity:

    def test_scheduled_run_returns_summary(self, store):
        heartbeats = []

        summary = run_activity(make_orchestrator(store), SyncRunInput("scheduled", True), heartbeats)

        assert summary["status"] == "succeeded"
        assert summary["trigger"] == "scheduled"
        assert summary["records"] == 2
        assert [h["entity"] for h in heartbeats] == ["customers", "vendors"]

    def test_scheduled_failure_is_reported_not_raised(self, store):
        summary = run_activity(make_orchestrator(store, vendors_fail=True), SyncRunInput("scheduled", True))

        assert summary["status"] == "failed"
        assert [s["status"] for s in summary["stages"]] == ["succeeded", "failed"]
        assert summary["stages"][1]["http_status"] == 500

    def test_manual_failure_raises_non_retryable(self, store):
        with pytest.raises(ApplicationError) as exc_info:
            run_activity(make_orchestrator(store, vendors_fail=True), SyncRunInput("manual", False))

        error = exc_info.value
        assert error.type == "StageFailedError"
        assert error.non_retryable
        assert "vendors" in str(error)
        assert error.details[0]["aborted"] is True

    def test_orchestrator_is_closed(self, store):
        orchestrator = make_orchestrator(store)
        orchestrator.aclose = AsyncMock()

        run_activity(orchestrator, SyncRunInput("manual", False))

        orchestrator.aclose.assert_awaited_once()

    def test_manual_run_rejected_while_another_runs(self, store):
        store.start_run("scheduled", True, timedelta(hours=4))

        with pytest.raises(ApplicationError) as exc_info:
            run_activity(make_orchestrator(store), SyncRunInput("manual", False))

        assert exc_info.value.type == "SyncAlreadyRunningError"

    def test_scheduled_run_skips_while_another_runs(self, store):
        store.start_run("manual", False, timedelta(hours=4))

        summary = run_activity(make_orchestrator(store), SyncRunInput("scheduled", True))

        assert summary["status"] == "skipped"


class TestSchedule:

    def test_schedule_definition(self):
        settings = Settings()
        schedule = build_sync_schedule(settings)

        assert schedule.spec.cron_expressions == ["0 2 * * *"]
        assert schedule.policy.overlap == ScheduleOverlapPolicy.SKIP
        assert schedule.action.workflow == "MirrorSyncWorkflow"
        assert schedule.action.task_queue == "erp-sync"
        assert schedule.action.id == "erp-mirror-daily-sync-run"
        assert schedule.action.args[0] == SyncRunInput("scheduled", True)

    def test_creates_schedule(self):
        client = MagicMock()
        client.create_schedule = AsyncMock()

        outcome = asyncio.run(ensure_sync_schedule(client, Settings()))

        assert outcome["status"] == "created"
        assert client.create_schedule.await_args.args[0] == "erp-mirror-daily-sync"

    def test_existing_schedule_is_updated(self):
        handle = MagicMock()
        handle.update = AsyncMock()
        client = MagicMock()
        client.create_schedule = AsyncMock(side_effect=ScheduleAlreadyRunningError())
        client.get_schedule_handle.return_value = handle

        outcome = asyncio.run(ensure_sync_schedule(client, Settings()))

        assert outcome["status"] == "updated"
        client.get_schedule_handle.assert_called_once_with("erp-mirror-daily-sync")
        updater = handle.update.await_args.args[0]
        assert updater(MagicMock()).schedule.spec.cron_expressions == ["0 2 * * *"]
