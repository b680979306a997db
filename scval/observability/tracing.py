"""OpenTelemetry spans for check runs.

Every ``check_files`` call opens one ``scval.check_files`` span with a child span
per pipeline stage. Attributes are namespaced ``scval.*``; a stage aborted by a
``ValidationError`` carries its code as ``scval.error_code``.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.trace import Span

from scval.errors import ValidationError
from scval.observability.config import ObservabilityConfig


TRACER_NAME = "scval.validation"
RUN_SPAN_NAME = "scval.check_files"


def init_tracing(cfg: ObservabilityConfig) -> bool:
    """Installs an SDK tracer provider when tracing is enabled.

    The global provider can only be set once per process; returns whether an SDK
    provider is active afterwards.
    """
    if cfg.tracing_enabled and not isinstance(trace.get_tracer_provider(), TracerProvider):
        trace.set_tracer_provider(TracerProvider(resource=Resource.create({"service.name": cfg.service_name})))
    return isinstance(trace.get_tracer_provider(), TracerProvider)


def stage_span_name(stage: str) -> str:
    return f"scval.stage.{stage.lower()}"


def set_scval_attributes(span: Span, fields: Mapping[str, Any]) -> None:
    for key, value in fields.items():
        if isinstance(value, (str, bool, int, float)):
            span.set_attribute(f"scval.{key}", value)


def event_ids(*, run_id: str, stage: str) -> tuple[str, str]:
    """Trace and span id for an observability event.

    Untraced runs fall back to ids derived from the run so events still group.
    """
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return run_id, f"{run_id}:{stage}"
    return f"{ctx.trace_id:032x}", f"{ctx.span_id:016x}"


@contextmanager
def run_span(*, run_id: str, input_count: int) -> Iterator[Span]:
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(RUN_SPAN_NAME) as span:
        set_scval_attributes(span, {"run_id": run_id, "input_count": input_count})
        yield span


@contextmanager
def stage_span(stage: str, *, run_id: str) -> Iterator[Span]:
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(stage_span_name(stage)) as span:
        set_scval_attributes(span, {"run_id": run_id, "stage": stage})
        try:
            yield span
        except ValidationError as e:
            span.set_attribute("scval.error_code", e.code)
            raise
