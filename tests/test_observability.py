import json
import re
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from opentelemetry import trace
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from scval.errors import MetadataNotFoundError
from scval.observability import metrics as prom_metrics
from scval.observability import tracing
from scval.observability.config import ObservabilityConfig
from scval.observability.file_observability_log import FileObservabilityLogger, build_observability_event
from scval.validation.service import ValidationService
from tests.metadata_fixtures import SOURCE_A, make_metadata, metadata_json, source_entry


class TestMetricsExposed(unittest.TestCase):
    def test_render_includes_validation_metrics(self) -> None:
        prom_metrics.observe_stage(stage="EXPAND", duration_ms=3, status="OK")
        prom_metrics.inc_metadata(status="valid")
        prom_metrics.observe_contract(found=1, missing=0, invalid=0, valid=True)
        prom_metrics.inc_submissions()

        body, content_type = prom_metrics.render_prometheus()
        text = body.decode("utf-8", errors="replace")

        self.assertTrue(content_type.startswith("text/plain"))
        for name in (
            "submissions_checked_total",
            "metadata_files_total",
            "sources_resolved_total",
            "checked_contracts_total",
            "stage_latency_ms",
        ):
            self.assertIn(name, text)


class TestTracing(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cfg = ObservabilityConfig(
            metrics_enabled=False, tracing_enabled=True, service_name="scval-test", events_dir=None
        )
        if not tracing.init_tracing(cfg):
            raise unittest.SkipTest("another tracer provider is installed")
        cls.exporter = InMemorySpanExporter()
        trace.get_tracer_provider().add_span_processor(SimpleSpanProcessor(cls.exporter))

    def setUp(self) -> None:
        self.exporter.clear()

    def test_event_ids_follow_active_span(self) -> None:
        with tracing.run_span(run_id="run-1", input_count=2):
            with tracing.stage_span("EXPAND", run_id="run-1"):
                trace_id, span_id = tracing.event_ids(run_id="run-1", stage="EXPAND")
        self.assertTrue(re.fullmatch(r"[0-9a-f]{32}", trace_id))
        self.assertTrue(re.fullmatch(r"[0-9a-f]{16}", span_id))

        self.assertEqual(tracing.event_ids(run_id="run-2", stage="INDEX"), ("run-2", "run-2:INDEX"))

    def test_check_run_records_stage_spans(self) -> None:
        metadata = make_metadata({"A.sol": source_entry(SOURCE_A)})
        ValidationService().check_files(
            {"metadata.json": metadata_json(metadata).encode("utf-8"), "A.sol": SOURCE_A.encode("utf-8")}
        )

        spans = {s.name: s for s in self.exporter.get_finished_spans()}
        self.assertEqual(
            set(spans),
            {
                tracing.RUN_SPAN_NAME,
                "scval.stage.expand",
                "scval.stage.detect",
                "scval.stage.index",
                "scval.stage.resolve",
            },
        )
        run_id = spans[tracing.RUN_SPAN_NAME].attributes["scval.run_id"]
        detect = spans["scval.stage.detect"]
        self.assertEqual(detect.attributes["scval.stage"], "DETECT")
        self.assertEqual(detect.attributes["scval.run_id"], run_id)
        self.assertEqual(detect.attributes["scval.metadata_files"], 1)
        self.assertEqual(detect.parent.span_id, spans[tracing.RUN_SPAN_NAME].context.span_id)

    def test_failed_stage_carries_error_code(self) -> None:
        with self.assertRaises(MetadataNotFoundError):
            ValidationService().check_files({"A.sol": SOURCE_A.encode("utf-8")})

        spans = {s.name: s for s in self.exporter.get_finished_spans()}
        self.assertEqual(spans["scval.stage.detect"].attributes["scval.error_code"], "METADATA_NOT_FOUND")
        self.assertNotIn("scval.stage.index", spans)


class TestFileObservabilityLogger(unittest.TestCase):
    def test_events_are_appended_per_run(self) -> None:
        occurred = datetime(2026, 1, 18, 12, 30, 15, 999, tzinfo=timezone.utc)
        with tempfile.TemporaryDirectory() as td:
            logger = FileObservabilityLogger(base_dir=Path(td))
            for stage in ("EXPAND", "DETECT"):
                logger.append(
                    build_observability_event(
                        event_type="STAGE_COMPLETE",
                        stage=stage,
                        run_id="run-1",
                        occurred_at=occurred,
                        duration_ms=2,
                        status="OK",
                    )
                )
            lines = logger.path_for(run_id="run-1").read_text(encoding="utf-8").splitlines()

        events = [json.loads(ln) for ln in lines]
        self.assertEqual([e["stage"] for e in events], ["EXPAND", "DETECT"])
        self.assertEqual(events[0]["occurred_at"], "2026-01-18T12:30:15Z")
        self.assertEqual(events[0]["fields"], {})


if __name__ == "__main__":
    unittest.main()
