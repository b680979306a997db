#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Optional

from scval.config import load_config
from scval.errors import ValidationError, reason_code
from scval.ingest.models import PathContent
from scval.logging_utils import configure_logging
from scval.observability import metrics as prom_metrics
from scval.observability.config import load_observability_config
from scval.observability.file_observability_log import FileObservabilityLogger
from scval.observability.tracing import init_tracing
from scval.report import CheckReport, validate_report
from scval.runtime.config import validate_config_file
from scval.validation.service import ValidationService
from scval.version import read_version


def _resolve_repo_path(repo_root: Path, path: str) -> Path:
    p = Path(path)
    return p if p.is_absolute() else (repo_root / p)


def cmd_check(args: argparse.Namespace) -> int:
    repo_root = Path(__file__).resolve().parent
    cfg_path = _resolve_repo_path(repo_root, args.config)
    try:
        cfg = load_config(path=cfg_path)
        obs = load_observability_config(path=cfg_path)
    except Exception as e:
        print(f"CHECK_FAILED: invalid --config: {e}")
        return 10

    logger = configure_logging(cfg.logging)
    init_tracing(obs)

    obs_logger: Optional[FileObservabilityLogger] = None
    if obs.events_dir is not None:
        obs_logger = FileObservabilityLogger(base_dir=_resolve_repo_path(repo_root, obs.events_dir))

    service = ValidationService.from_config(cfg, logger=logger, obs_logger=obs_logger)

    ignored: list[str] = []
    unused: Optional[list[PathContent]] = None
    if cfg.validation.report_unused and not args.no_unused:
        unused = []

    try:
        contracts = service.check_paths(args.paths, ignoring=ignored, unused=unused)
    except ValidationError as e:
        print(f"CHECK_FAILED: {reason_code(e)}: {e}")
        return 20

    try:
        scval_version: Optional[str] = read_version(repo_root=repo_root)
    except (FileNotFoundError, ValueError) as e:
        logger.warning("scval version unavailable: %s", e)
        scval_version = None

    report = CheckReport(
        contracts=contracts, ignored=ignored, unused=unused or [], scval_version=scval_version
    )
    payload = report.to_dict()
    validate_report(payload)

    if obs.metrics_enabled and args.metrics_path is not None:
        body, _content_type = prom_metrics.render_prometheus()
        metrics_path = Path(args.metrics_path)
        metrics_path.parent.mkdir(parents=True, exist_ok=True)
        metrics_path.write_bytes(body)

    if args.report_path is not None:
        out_path = Path(args.report_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True) + "\n",
            encoding="utf-8",
        )
    else:
        print(json.dumps(payload, ensure_ascii=False, sort_keys=True))

    for path in ignored:
        print(f"IGNORED: {path}")

    if report.ok:
        print(f"CHECK_OK: contracts={len(contracts)}")
        return 0
    print(f"CHECK_INCOMPLETE: contracts={len(contracts)}")
    return 1


def cmd_config_validate(args: argparse.Namespace) -> int:
    repo_root = Path(__file__).resolve().parent
    cfg_path = _resolve_repo_path(repo_root, args.config)
    try:
        validate_config_file(path=cfg_path)
    except Exception as e:
        print(f"CONFIG_VALIDATE_FAILED: {e}")
        return 60
    print("CONFIG_VALIDATE_OK")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    repo_root = Path(__file__).resolve().parent
    try:
        version = read_version(repo_root=repo_root)
    except Exception as e:
        print(f"VERSION_FAILED: {e}")
        return 60
    print(version)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="scvalctl")
    sub = parser.add_subparsers(dest="command", required=True)

    version = sub.add_parser("version")
    version.set_defaults(func=cmd_version)

    check = sub.add_parser("check")
    check.add_argument("paths", nargs="+", help="Files, directories or zip archives to check.")
    check.add_argument("--config", default="configs/dev.yaml", help="Config file (repo-relative).")
    check.add_argument(
        "--report-path",
        default=None,
        help="Optional path to write the JSON report (default prints it to stdout).",
    )
    check.add_argument(
        "--metrics-path",
        default=None,
        help="Optional path to write Prometheus metrics (requires observability.metrics_enabled).",
    )
    check.add_argument(
        "--no-unused",
        action="store_true",
        help="Do not report submitted files that no metadata referred to.",
    )
    check.set_defaults(func=cmd_check)

    config = sub.add_parser("config")
    config_sub = config.add_subparsers(dest="config_command", required=True)

    cfg_validate = config_sub.add_parser("validate")
    cfg_validate.add_argument("--config", default="configs/dev.yaml", help="Config file (repo-relative).")
    cfg_validate.set_defaults(func=cmd_config_validate)

    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
