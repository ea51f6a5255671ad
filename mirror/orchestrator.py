"""Sync orchestrator: runs the stage list for scheduled and manual triggers.

Two trigger policies share one runner:

- scheduled: always a full resync; a failed stage is logged and the
  remaining stages still run; nothing is raised to the caller.
- manual: incremental unless asked otherwise; the first failed stage
  aborts the run; the caller gets a structured success/failure payload.

At most one run executes at a time. The in-process lock rejects a second
trigger immediately, and the store's run row rejects runs from other
processes sharing the database.
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from connectors.business_central.bc_auth import BCAuthConfig, BCCredentialProvider
from connectors.business_central.bc_client import BCApiConfig, FetchError, ODataClient
from connectors.business_central.tmc_api import TmcApiAdapter
from connectors.business_central.v2_api import V2ApiAdapter
from core.config import Settings
from core.observability import (
    get_logger,
    get_metrics,
    record_run_finished,
    record_run_started,
    record_stage_completed,
    record_stage_failed,
    record_stage_started,
    with_correlation,
)
from core.observability.logging import log_stage_complete, log_stage_error, log_stage_start
from mirror.errors import MirrorError, StageFailedError, SyncAlreadyRunningError
from mirror.models import MirrorRecord
from mirror.stages import ChildStage, StageDescriptor, build_stages
from mirror.store import RUN_FAILED, RUN_SUCCEEDED, MirrorStore

logger = get_logger(__name__)

TRIGGER_MANUAL = "manual"
TRIGGER_SCHEDULED = "scheduled"

STAGE_SUCCEEDED = "succeeded"
STAGE_FAILED = "failed"

MANUAL_SUCCESS_MESSAGE = "Synchronization completed successfully"
MANUAL_FAILURE_MESSAGE = "Synchronization failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Results
# =============================================================================

@dataclass
class StageResult:
    """Outcome of one stage."""
    entity: str
    status: str
    records: int = 0
    lines: int = 0
    warnings: int = 0
    duration_ms: float = 0.0
    source: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    http_status: Optional[int] = None
    cause: Optional[Exception] = field(default=None, repr=False, compare=False)

    @property
    def succeeded(self) -> bool:
        return self.status == STAGE_SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "status": self.status,
            "records": self.records,
            "lines": self.lines,
            "warnings": self.warnings,
            "duration_ms": round(self.duration_ms, 1),
            "source": self.source,
            "error": self.error,
            "error_type": self.error_type,
            "http_status": self.http_status,
        }


@dataclass
class SyncRunResult:
    """Outcome of one sync run across all stages."""
    run_id: int
    trigger: str
    full_resync: bool
    started_at: datetime
    finished_at: Optional[datetime] = None
    stages: List[StageResult] = field(default_factory=list)
    aborted: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.aborted and all(s.succeeded for s in self.stages)

    @property
    def failed_stages(self) -> List[StageResult]:
        return [s for s in self.stages if not s.succeeded]

    @property
    def first_failure(self) -> Optional[StageResult]:
        failed = self.failed_stages
        return failed[0] if failed else None

    def error_summary(self) -> Optional[str]:
        failed = self.failed_stages
        if not failed:
            return None
        return "; ".join(f"{s.entity}: {s.error}" for s in failed)

    def raise_for_failure(self) -> None:
        """Raise StageFailedError for the first failed stage, if any."""
        failure = self.first_failure
        if failure is not None:
            raise StageFailedError(failure.entity, failure.source, failure.cause or Exception(failure.error))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "trigger": self.trigger,
            "full_resync": self.full_resync,
            "status": RUN_SUCCEEDED if self.succeeded else RUN_FAILED,
            "aborted": self.aborted,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "records": sum(s.records for s in self.stages),
            "lines": sum(s.lines for s in self.stages),
            "warnings": sum(s.warnings for s in self.stages),
            "stages": [s.to_dict() for s in self.stages],
        }


class ManualSyncResponse(BaseModel):
    """Payload returned to a manual trigger caller."""
    success: bool
    message: str
    error: Optional[str] = None
    run: Optional[Dict[str, Any]] = None


StageCallback = Callable[[StageResult], None]


# =============================================================================
# Orchestrator
# =============================================================================

class SyncOrchestrator:
    """Runs stage descriptors in order against one store.

    Usage:
        orchestrator = build_orchestrator(load_settings())
        try:
            response = await orchestrator.run_manual_sync(full_resync=False)
        finally:
            await orchestrator.aclose()
    """

    def __init__(
        self,
        store: MirrorStore,
        stages: Sequence[StageDescriptor],
        lock_stale_after: timedelta = timedelta(minutes=240),
        clients: Sequence[ODataClient] = (),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.stages = list(stages)
        self.lock_stale_after = lock_stale_after
        self.clients = list(clients)
        self._clock = clock
        self._run_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    async def aclose(self) -> None:
        for client in self.clients:
            await client.disconnect()
        self.store.close()

    # =========================================================================
    # Stage Runner
    # =========================================================================

    async def run_stage(
        self,
        descriptor: StageDescriptor,
        full_resync: bool,
        started_at: datetime,
    ) -> StageResult:
        """Run one stage; failures are returned, never raised."""
        entity = descriptor.entity_name
        result = StageResult(entity=entity, status=STAGE_SUCCEEDED)
        t0 = time.perf_counter()

        modified_since = None
        if descriptor.incremental and not full_resync:
            modified_since = self.store.get_checkpoint(entity)

        record_stage_started(entity)
        with with_correlation(entity=entity):
            log_stage_start(
                entity,
                mode="full" if modified_since is None else "incremental",
                modified_since=modified_since.isoformat() if modified_since else None,
            )
            try:
                for binding in descriptor.bindings:
                    result.source = binding.source
                    with with_correlation(source=binding.source):
                        async for raw in binding.fetch(modified_since):
                            record = binding.transform(raw, source_tag=binding.source)
                            self._log_warnings(record)
                            descriptor.upsert(record)
                            result.records += 1
                            result.warnings += len(record.warnings)

                            if descriptor.child is not None:
                                lines, warnings = await self._sync_lines(descriptor.child, raw, record, binding.source)
                                result.lines += lines
                                result.warnings += warnings

                self.store.set_checkpoint(entity, started_at)
            except Exception as e:
                result.status = STAGE_FAILED
                result.error = str(e)
                result.error_type = type(e).__name__
                result.cause = e
                if isinstance(e, FetchError):
                    result.http_status = e.http_status
                result.duration_ms = (time.perf_counter() - t0) * 1000
                record_stage_failed(entity, result.records, result.lines)
                log_stage_error(
                    entity,
                    result.error,
                    source=result.source,
                    error_type=result.error_type,
                    http_status=result.http_status,
                    records=result.records,
                )
                logger.debug(f"Stage {entity} failure detail", exc_info=True)
                return result

            result.duration_ms = (time.perf_counter() - t0) * 1000
            record_stage_completed(entity, result.records, result.lines, result.warnings, result.duration_ms)
            log_stage_complete(
                entity,
                result.duration_ms,
                records=result.records,
                lines=result.lines,
                warnings=result.warnings,
            )
        return result

    async def _sync_lines(
        self,
        child: ChildStage,
        parent_raw: Dict[str, Any],
        parent: MirrorRecord,
        source: str,
    ) -> Tuple[int, int]:
        """Replace one document's lines; returns (lines, warnings)."""
        parent_key = parent.id
        with with_correlation(record_id=parent_key):
            # Fetch the full line set before touching stored lines
            raw_lines = [raw async for raw in child.fetch_lines(parent_raw["id"])]
            lines = [child.transform(raw, source_tag=source, parent_key=parent_key) for raw in raw_lines]

            removed = child.replace_lines(parent_key, source, lines)
            warnings = 0
            for line in lines:
                self._log_warnings(line)
                warnings += len(line.warnings)

            if removed and removed != len(lines):
                logger.debug(f"{child.entity_name}: document {parent_key} went from {removed} to {len(lines)} lines")
        return len(lines), warnings

    def _log_warnings(self, record: MirrorRecord) -> None:
        for warning in record.warnings:
            logger.warning(
                f"{record.table} {record.key()}: {warning}",
                extra_fields={"record_key": list(map(str, record.key()))},
            )

    # =========================================================================
    # Runs
    # =========================================================================

    async def sync_all(
        self,
        full_resync: bool = False,
        stop_on_failure: bool = True,
        trigger: str = TRIGGER_MANUAL,
        on_stage: Optional[StageCallback] = None,
    ) -> SyncRunResult:
        """Run every stage in order under the single-flight guard.

        Raises:
            SyncAlreadyRunningError: Another run is in progress
        """
        if self._run_lock.locked():
            get_metrics().record_run_rejected()
            raise SyncAlreadyRunningError()

        async with self._run_lock:
            try:
                run_id = self.store.start_run(trigger, full_resync, self.lock_stale_after)
            except SyncAlreadyRunningError:
                get_metrics().record_run_rejected()
                raise

            result = SyncRunResult(
                run_id=run_id,
                trigger=trigger,
                full_resync=full_resync,
                started_at=self._clock(),
            )
            record_run_started(trigger)

            with with_correlation(sync_run_id=str(run_id), trigger=trigger):
                logger.info(
                    f"Sync run {run_id} started ({trigger}, {'full' if full_resync else 'incremental'})",
                    extra_fields={"stages": len(self.stages)},
                )
                try:
                    for descriptor in self.stages:
                        stage_result = await self.run_stage(descriptor, full_resync, result.started_at)
                        result.stages.append(stage_result)
                        if on_stage is not None:
                            on_stage(stage_result)
                        if not stage_result.succeeded and stop_on_failure:
                            result.aborted = True
                            logger.error(f"Sync run {run_id} aborted after {descriptor.entity_name} failed")
                            break
                finally:
                    result.finished_at = self._clock()
                    if len(result.stages) < len(self.stages):
                        result.aborted = True
                    status = RUN_SUCCEEDED if result.succeeded else RUN_FAILED
                    self.store.finish_run(run_id, status, error=result.error_summary(), stats=result.to_dict())
                    record_run_finished(trigger, status == RUN_SUCCEEDED)

                summary = result.to_dict()
                logger.info(
                    f"Sync run {run_id} finished: {summary['status']}",
                    extra_fields={
                        "records": summary["records"],
                        "lines": summary["lines"],
                        "failed_stages": [s.entity for s in result.failed_stages],
                    },
                )
        return result

    async def execute(
        self,
        trigger: str,
        full_resync: bool = False,
        on_stage: Optional[StageCallback] = None,
    ) -> SyncRunResult:
        """Run with the policy belonging to a trigger kind."""
        if trigger == TRIGGER_SCHEDULED:
            return await self.sync_all(full_resync=True, stop_on_failure=False, trigger=trigger, on_stage=on_stage)
        if trigger == TRIGGER_MANUAL:
            return await self.sync_all(full_resync=full_resync, stop_on_failure=True, trigger=trigger, on_stage=on_stage)
        raise ValueError(f"Unknown sync trigger: {trigger}")

    async def run_manual_sync(self, full_resync: bool = False) -> ManualSyncResponse:
        """Manual trigger: stop on first failure, report a structured result."""
        try:
            result = await self.execute(TRIGGER_MANUAL, full_resync=full_resync)
        except MirrorError as e:
            logger.warning(f"Manual sync rejected: {e}")
            return ManualSyncResponse(success=False, message=MANUAL_FAILURE_MESSAGE, error=str(e))

        if result.succeeded:
            return ManualSyncResponse(success=True, message=MANUAL_SUCCESS_MESSAGE, run=result.to_dict())

        failure = result.first_failure
        return ManualSyncResponse(
            success=False,
            message=MANUAL_FAILURE_MESSAGE,
            error=f"{failure.entity}: {failure.error}" if failure else "sync run did not complete",
            run=result.to_dict(),
        )

    async def run_scheduled_sync(self) -> None:
        """Scheduled trigger: full resync, continue past failures, never raise."""
        try:
            result = await self.execute(TRIGGER_SCHEDULED)
        except SyncAlreadyRunningError as e:
            logger.warning(f"Scheduled sync skipped: {e}")
            return
        except Exception:
            logger.exception("Scheduled sync crashed")
            return

        for failure in result.failed_stages:
            logger.error(
                f"Scheduled sync stage {failure.entity} failed: {failure.error}",
                extra_fields={"sync_run_id": result.run_id, "source": failure.source},
            )


# =============================================================================
# Factory
# =============================================================================

def build_orchestrator(settings: Settings) -> SyncOrchestrator:
    """Wire credentials, both API adapters and the store from settings.

    Raises:
        ConfigurationError: Required Business Central settings are missing
    """
    bc = settings.business_central
    bc.validate()

    credentials = BCCredentialProvider(BCAuthConfig(
        tenant_id=bc.tenant_id,
        client_id=bc.client_id,
        client_secret=bc.client_secret,
        scope=bc.scope,
        authority_url=bc.authority_url,
    ))

    def api_config(api_path: str) -> BCApiConfig:
        return BCApiConfig(
            tenant_id=bc.tenant_id,
            company_id=bc.company_id,
            environment=bc.environment,
            base_url=bc.api_base_url,
            api_path=api_path,
            page_size=bc.page_size,
            timeout_seconds=bc.timeout_seconds,
        )

    v2 = V2ApiAdapter(credentials, api_config("v2.0"))
    tmc = TmcApiAdapter(credentials, api_config(bc.custom_api_path))

    store = MirrorStore(settings.sync.db_path)
    store.init_schema()

    stages = build_stages(v2, tmc, store, include_custom_customers=settings.sync.include_custom_customers)
    return SyncOrchestrator(
        store,
        stages,
        lock_stale_after=timedelta(minutes=settings.sync.lock_stale_minutes),
        clients=[v2, tmc],
    )
