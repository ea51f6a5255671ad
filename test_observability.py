"""
Observability Validation Test

This test validates the observability stack:
1. Metrics collection works (run/stage/timing metrics)
2. Structured logging with sync-run correlation works
3. Human-readable output carries the run/entity/source prefix
"""

import json
import logging
from datetime import datetime

import pytest


def test_observability_imports():
    """Verify all observability modules import correctly."""
    from core.observability import (
        MetricsCollector, get_metrics,
        record_run_started, record_run_finished,
        record_stage_started, record_stage_completed, record_stage_failed,
        get_logger, configure_logging, CorrelationContext, with_correlation,
    )
    assert MetricsCollector is not None
    assert get_metrics is not None
    assert CorrelationContext is not None


@pytest.fixture
def metrics():
    from core.observability.metrics import MetricsCollector
    MetricsCollector.reset()
    yield MetricsCollector.instance()
    MetricsCollector.reset()


class TestMetricsCollector:
    """Test the metrics collection system."""

    def test_singleton_instance(self):
        """MetricsCollector returns same instance."""
        from core.observability.metrics import MetricsCollector
        m1 = MetricsCollector.instance()
        m2 = MetricsCollector.instance()
        assert m1 is m2

    def test_run_metrics_tracking(self, metrics):
        """Track run started/succeeded/failed counts per trigger."""
        metrics.record_run_started("manual")
        metrics.record_run_started("scheduled")
        metrics.record_run_finished("manual", succeeded=True)
        metrics.record_run_finished("scheduled", succeeded=False)
        metrics.record_run_rejected()

        summary = metrics.get_summary()
        assert summary["runs"]["started"] == 2
        assert summary["runs"]["succeeded"] == 1
        assert summary["runs"]["failed"] == 1
        assert summary["runs"]["rejected"] == 1
        assert summary["runs"]["in_progress"] == 0
        assert summary["runs"]["by_trigger"]["manual"]["succeeded"] == 1
        assert summary["runs"]["by_trigger"]["scheduled"]["failed"] == 1
        assert summary["runs"]["last_finished_at"] is not None

    def test_stage_metrics_tracking(self, metrics):
        """Track stage outcomes and record counts per entity."""
        metrics.record_stage_started("customers")
        metrics.record_stage_completed("customers", records=10, lines=0, warnings=2, duration_ms=12.5)
        metrics.record_stage_started("sales_invoices")
        metrics.record_stage_failed("sales_invoices", records=3, lines=7)

        summary = metrics.get_summary()
        assert summary["stages"]["started"] == 2
        assert summary["stages"]["completed"] == 1
        assert summary["stages"]["failed"] == 1
        assert summary["stages"]["by_entity"]["customers"]["records"] == 10
        assert summary["stages"]["by_entity"]["customers"]["warnings"] == 2
        assert summary["stages"]["by_entity"]["sales_invoices"]["lines"] == 7
        assert "customers" in summary["timings"]["by_stage"]

    def test_timing_percentile_calculation(self, metrics):
        """Calculate p95 timing correctly."""
        test_stage = f"test_stage_{datetime.now().timestamp()}"
        for i in range(1, 101):
            metrics.record_stage_completed(test_stage, duration_ms=i)

        stats = metrics.get_timing_stats(test_stage)

        # Average should be ~50.5
        assert 49 <= stats["average_ms"] <= 52
        # P95 should be ~95
        assert 93 <= stats["p95_ms"] <= 97
        assert stats["sample_count"] == 100

    def test_module_level_helpers_use_singleton(self, metrics):
        from core.observability import get_metrics, record_stage_completed
        record_stage_completed("vendors", records=4)
        assert get_metrics() is metrics
        assert metrics.get_summary()["stages"]["by_entity"]["vendors"]["records"] == 4


class TestCorrelatedLogging:
    """Test structured logging with correlation IDs."""

    def test_correlation_context_creation(self):
        """Create correlation context with all fields."""
        from core.observability.logging import CorrelationContext

        ctx = CorrelationContext(
            sync_run_id="17",
            trigger="manual",
            entity="customers",
            source="v2.0",
            workflow_id="wf-abc",
        )

        assert ctx.sync_run_id == "17"
        assert ctx.entity == "customers"
        assert ctx.to_dict() == {
            "sync_run_id": "17",
            "trigger": "manual",
            "entity": "customers",
            "source": "v2.0",
            "workflow_id": "wf-abc",
        }

    def test_context_var_isolation(self):
        """Nested with_correlation merges and restores context."""
        from core.observability.logging import get_correlation_context, with_correlation

        assert get_correlation_context().sync_run_id is None

        with with_correlation(sync_run_id="17", trigger="scheduled"):
            with with_correlation(entity="vendors"):
                inner_ctx = get_correlation_context()
                assert inner_ctx.sync_run_id == "17"
                assert inner_ctx.entity == "vendors"
            assert get_correlation_context().entity is None

        after_ctx = get_correlation_context()
        assert after_ctx.sync_run_id is None
        assert after_ctx.trigger is None

    def test_structured_formatter_json_output(self):
        """StructuredFormatter outputs valid JSON with correlation and extras."""
        from core.observability.logging import StructuredFormatter, with_correlation

        formatter = StructuredFormatter()

        with with_correlation(sync_run_id="17", entity="customers"):
            record = logging.LogRecord(
                name="test",
                level=logging.INFO,
                pathname="test.py",
                lineno=10,
                msg="Stage completed",
                args=(),
                exc_info=None,
            )
            record.extra_fields = {"records": 120}

            output = formatter.format(record)
            data = json.loads(output)

            assert data["message"] == "Stage completed"
            assert data["sync_run_id"] == "17"
            assert data["entity"] == "customers"
            assert data["records"] == 120

    def test_human_readable_prefix(self):
        from core.observability.logging import HumanReadableFormatter, with_correlation

        formatter = HumanReadableFormatter()
        record = logging.LogRecord("mirror.stages", logging.ERROR, "x.py", 1, "Stage failed", (), None)
        record.extra_fields = {"http_status": 503}

        with with_correlation(sync_run_id="3", entity="general_ledger_entries", source="v2.0"):
            output = formatter.format(record)

        assert "[run:3/general_ledger_entries@v2.0]" in output
        assert "Stage failed" in output
        assert "http_status=503" in output

    def test_correlated_logger_keeps_exception_info(self, caplog):
        from core.observability import get_logger

        logger = get_logger("mirror.test_exc")
        with caplog.at_level(logging.ERROR, logger="mirror.test_exc"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("Stage crashed", extra_fields={"entity": "items"})

        record = caplog.records[-1]
        assert record.getMessage() == "Stage crashed"
        assert record.exc_info is not None
        assert record.extra_fields == {"entity": "items"}
