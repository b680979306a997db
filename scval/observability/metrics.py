from __future__ import annotations


try:
    from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
except Exception as e:  # pragma: no cover
    raise RuntimeError("prometheus_client is required (pip install prometheus-client)") from e


submissions_checked_total = Counter(
    "submissions_checked_total",
    "Total submissions checked (check_files calls that resolved at least one metadata file).",
)

metadata_files_total = Counter(
    "metadata_files_total",
    "Metadata files detected in submissions by status.",
    labelnames=("status",),
)

sources_resolved_total = Counter(
    "sources_resolved_total",
    "Declared metadata sources by resolution outcome.",
    labelnames=("status",),
)

checked_contracts_total = Counter(
    "checked_contracts_total",
    "Checked contracts produced, by validity.",
    labelnames=("valid",),
)

stage_latency_ms = Histogram(
    "stage_latency_ms",
    "Validation stage latency in milliseconds.",
    labelnames=("stage", "status"),
    buckets=(
        1,
        5,
        10,
        25,
        50,
        100,
        250,
        500,
        1000,
        5000,
    ),
)


def observe_stage(*, stage: str, duration_ms: int, status: str) -> None:
    if duration_ms < 0:
        return
    stage_latency_ms.labels(stage=stage, status=status).observe(duration_ms)


def inc_metadata(*, status: str, count: int = 1) -> None:
    if count <= 0:
        return
    metadata_files_total.labels(status=status).inc(count)


def observe_contract(*, found: int, missing: int, invalid: int, valid: bool) -> None:
    for status, count in (("found", found), ("missing", missing), ("invalid", invalid)):
        if count > 0:
            sources_resolved_total.labels(status=status).inc(count)
    checked_contracts_total.labels(valid="true" if valid else "false").inc()


def inc_submissions(*, count: int = 1) -> None:
    if count <= 0:
        return
    submissions_checked_total.inc(count)


def render_prometheus() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
