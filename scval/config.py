from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

import yaml

from scval.hashing import sha256_prefixed


DECODE_ERROR_MODES = ("strict", "replace", "ignore")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _discover_repo_root(start: Path) -> Optional[Path]:
    for p in [start] + list(start.parents):
        if (p / "VERSION").is_file() and (p / "scval").is_dir():
            return p
    return None


def _stable_repo_relative_path(path: Path) -> str:
    try:
        resolved = path.resolve()
    except Exception:
        return path.as_posix()

    root = _discover_repo_root(resolved)
    if root is None:
        return path.as_posix()
    try:
        return resolved.relative_to(root).as_posix()
    except Exception:
        return path.as_posix()


def _require_dict(obj: Any, *, path: str) -> dict[str, Any]:
    if not isinstance(obj, dict):
        raise ValueError(f"{path} must be a mapping")
    return obj


def _require_str(obj: Any, *, path: str) -> str:
    if not isinstance(obj, str) or not obj:
        raise ValueError(f"{path} must be a non-empty string")
    return obj


def _require_bool(obj: Any, *, path: str) -> bool:
    if not isinstance(obj, bool):
        raise ValueError(f"{path} must be a boolean")
    return obj


def _optional_str(obj: Any, *, path: str) -> Optional[str]:
    if obj is None:
        return None
    return _require_str(obj, path=path)


@dataclass(frozen=True)
class ValidationConfig:
    scratch_dir: Optional[str]
    decode_errors: str
    report_unused: bool


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    log_paths: Sequence[str]


@dataclass(frozen=True)
class ScvalConfig:
    config_path: str
    config_sha256: str
    validation: ValidationConfig
    logging: LoggingConfig


def load_config(*, path: Path) -> ScvalConfig:
    data_bytes = path.read_bytes()
    cfg = yaml.safe_load(data_bytes.decode("utf-8"))
    cfg = _require_dict(cfg, path="config")

    validation = _require_dict(cfg.get("validation") or {}, path="validation")
    decode_errors = _require_str(validation.get("decode_errors", "replace"), path="validation.decode_errors")
    if decode_errors not in DECODE_ERROR_MODES:
        raise ValueError(f"validation.decode_errors must be one of {', '.join(DECODE_ERROR_MODES)}")

    logging_obj = _require_dict(cfg.get("logging") or {}, path="logging")
    level = _require_str(logging_obj.get("level", "INFO"), path="logging.level").upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {', '.join(LOG_LEVELS)}")

    log_paths_raw = logging_obj.get("log_paths", [])
    if log_paths_raw is None:
        log_paths_raw = []
    if not isinstance(log_paths_raw, list) or not all(isinstance(x, str) and x for x in log_paths_raw):
        raise ValueError("logging.log_paths must be a list of non-empty strings")

    return ScvalConfig(
        config_path=_stable_repo_relative_path(path),
        config_sha256=sha256_prefixed(data_bytes),
        validation=ValidationConfig(
            scratch_dir=_optional_str(validation.get("scratch_dir"), path="validation.scratch_dir"),
            decode_errors=decode_errors,
            report_unused=_require_bool(
                validation.get("report_unused", True), path="validation.report_unused"
            ),
        ),
        logging=LoggingConfig(level=level, log_paths=tuple(log_paths_raw)),
    )
