from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from scval.config import _optional_str, _require_bool, _require_dict, _require_str


DEFAULT_SERVICE_NAME = "scval"


@dataclass(frozen=True)
class ObservabilityConfig:
    """The ``observability`` section: Prometheus metrics, OpenTelemetry spans and
    the per-run JSONL stage events written under ``events_dir``."""

    metrics_enabled: bool
    tracing_enabled: bool
    service_name: str
    events_dir: Optional[str]


def _is_within(path: Path, parent: Path) -> bool:
    path = path.resolve()
    parent = parent.resolve()
    return path == parent or parent in path.parents


def observability_config_from_dict(doc: dict[str, Any], *, scratch_dir: Optional[str]) -> ObservabilityConfig:
    obs = _require_dict(doc.get("observability") or {}, path="observability")

    events_dir = _optional_str(obs.get("events_dir"), path="observability.events_dir")
    # scratch_dir only holds transient unzip areas
    if events_dir is not None and scratch_dir is not None and _is_within(Path(events_dir), Path(scratch_dir)):
        raise ValueError("observability.events_dir must not be inside validation.scratch_dir")

    return ObservabilityConfig(
        metrics_enabled=_require_bool(obs.get("metrics_enabled", False), path="observability.metrics_enabled"),
        tracing_enabled=_require_bool(obs.get("tracing_enabled", False), path="observability.tracing_enabled"),
        service_name=_require_str(
            obs.get("service_name", DEFAULT_SERVICE_NAME), path="observability.service_name"
        ),
        events_dir=events_dir,
    )


def load_observability_config(*, path: Path) -> ObservabilityConfig:
    doc = _require_dict(yaml.safe_load(path.read_text(encoding="utf-8")), path="config")
    validation = _require_dict(doc.get("validation") or {}, path="validation")
    return observability_config_from_dict(
        doc,
        scratch_dir=_optional_str(validation.get("scratch_dir"), path="validation.scratch_dir"),
    )
