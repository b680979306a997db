from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Union

from opentelemetry.trace import Span

from scval.checked_contract import CheckedContract
from scval.config import ScvalConfig
from scval.errors import MalformedMetadataError, MetadataNotFoundError, NonexistentPathError, ValidationError
from scval.ingest.archive import ArchiveExpander
from scval.ingest.models import PathBuffer, PathContent
from scval.ingest.traverse import traverse_path
from scval.metadata.detect import split_files
from scval.observability import metrics as prom_metrics
from scval.observability.file_observability_log import FileObservabilityLogger, build_observability_event
from scval.observability.tracing import run_span, set_scval_attributes, stage_span
from scval.resolve.hash_index import HashIndex
from scval.resolve.sources import rearrange_sources


Files = Union[Sequence[PathBuffer], Mapping[str, bytes]]


@dataclass
class ValidationService:
    """Checks submitted files against the Solidity metadata found among them.

    ``logger`` receives fatal conditions and the aggregated report of incomplete
    contracts; without a logger nothing is logged.
    """

    logger: Optional[logging.Logger] = None
    scratch_dir: Optional[Path] = None
    decode_errors: str = "replace"
    obs_logger: Optional[FileObservabilityLogger] = None

    @classmethod
    def from_config(
        cls,
        cfg: ScvalConfig,
        *,
        logger: Optional[logging.Logger] = None,
        obs_logger: Optional[FileObservabilityLogger] = None,
    ) -> "ValidationService":
        scratch = cfg.validation.scratch_dir
        return cls(
            logger=logger,
            scratch_dir=Path(scratch) if scratch else None,
            decode_errors=cfg.validation.decode_errors,
            obs_logger=obs_logger,
        )

    def check_paths(
        self,
        paths: Sequence[Union[str, Path]],
        ignoring: Optional[list[str]] = None,
        unused: Optional[list[PathContent]] = None,
    ) -> list[CheckedContract]:
        """Checks every metadata file found under ``paths``.

        Paths may be regular files, directories or zip archives. Paths that do not
        exist are appended to ``ignoring`` (when given) instead of failing the call.
        Raises ``ValidationError`` if no usable metadata is found.
        """
        files: list[PathBuffer] = []

        def read_file(file_path: Path) -> None:
            files.append(PathBuffer(path=str(file_path.resolve()), buffer=file_path.read_bytes()))

        for path in paths:
            p = Path(path)
            if not p.exists():
                if ignoring is not None:
                    ignoring.append(str(path))
                continue
            try:
                traverse_path(p, read_file)
            except NonexistentPathError as e:
                if self.logger is not None:
                    self.logger.error(str(e))
                raise

        return self.check_files(files, unused=unused)

    def check_files(
        self,
        files: Files,
        unused: Optional[list[PathContent]] = None,
    ) -> list[CheckedContract]:
        """Checks the provided buffers; zip archives among them are expanded.

        Every metadata file is resolved against the other files by keccak256 of
        their content. When ``unused`` is given it receives the files no metadata
        referred to. Raises ``ValidationError`` if no usable metadata is found, an
        archive cannot be extracted or, with ``decode_errors="strict"``, an entry is
        not valid UTF-8.
        """
        if isinstance(files, Mapping):
            files = [PathBuffer(path=name, buffer=data) for name, data in files.items()]

        run_id = str(uuid.uuid4())
        with run_span(run_id=run_id, input_count=len(files)):
            with stage_span("EXPAND", run_id=run_id) as span:
                t0 = time.perf_counter()
                try:
                    input_files = ArchiveExpander(scratch_dir=self.scratch_dir).find_input_files(files)
                except ValidationError as e:
                    self._fail(e, stage="EXPAND", run_id=run_id, started=t0, span=span)
                    raise
                self._stage_complete(
                    stage="EXPAND",
                    run_id=run_id,
                    started=t0,
                    span=span,
                    fields={"input_files": len(input_files)},
                )

            with stage_span("DETECT", run_id=run_id) as span:
                t0 = time.perf_counter()
                try:
                    parsed = [f.decode(errors=self.decode_errors) for f in input_files]
                    split = split_files(parsed, logger=self.logger)
                except MalformedMetadataError as e:
                    prom_metrics.inc_metadata(status="malformed", count=len(e.paths))
                    self._fail(e, stage="DETECT", run_id=run_id, started=t0, span=span, logged=True)
                    raise
                except MetadataNotFoundError as e:
                    self._fail(e, stage="DETECT", run_id=run_id, started=t0, span=span, logged=True)
                    raise
                except ValidationError as e:
                    self._fail(e, stage="DETECT", run_id=run_id, started=t0, span=span)
                    raise
                prom_metrics.inc_metadata(status="valid", count=len(split.metadata_files))
                prom_metrics.inc_metadata(status="malformed", count=len(split.malformed_paths))
                self._stage_complete(
                    stage="DETECT",
                    run_id=run_id,
                    started=t0,
                    span=span,
                    fields={
                        "metadata_files": len(split.metadata_files),
                        "malformed_metadata_files": len(split.malformed_paths),
                        "other_files": len(split.other_files),
                    },
                )

            with stage_span("INDEX", run_id=run_id) as span:
                t0 = time.perf_counter()
                by_hash = HashIndex.from_files(split.other_files)
                self._stage_complete(
                    stage="INDEX", run_id=run_id, started=t0, span=span, fields={"indexed": len(by_hash)}
                )

            with stage_span("RESOLVE", run_id=run_id) as span:
                t0 = time.perf_counter()
                checked_contracts: list[CheckedContract] = []
                error_msg_material: list[str] = []
                for metadata in split.metadata_files:
                    partition = rearrange_sources(metadata, by_hash)
                    contract = CheckedContract(
                        metadata,
                        partition.found_sources,
                        partition.missing_sources,
                        partition.invalid_sources,
                    )
                    checked_contracts.append(contract)
                    prom_metrics.observe_contract(
                        found=len(contract.found_sources),
                        missing=len(contract.missing_sources),
                        invalid=len(contract.invalid_sources),
                        valid=contract.is_valid(),
                    )
                    if not contract.is_valid():
                        error_msg_material.append(contract.get_info())

                if error_msg_material and self.logger is not None:
                    self.logger.error("\n".join(error_msg_material))

                if unused is not None:
                    unused.extend(by_hash.unused())

                self._stage_complete(
                    stage="RESOLVE",
                    run_id=run_id,
                    started=t0,
                    span=span,
                    fields={
                        "checked_contracts": len(checked_contracts),
                        "invalid_contracts": len(error_msg_material),
                    },
                )
            prom_metrics.inc_submissions()

        return checked_contracts

    def _fail(
        self,
        e: ValidationError,
        *,
        stage: str,
        run_id: str,
        started: float,
        span: Span,
        logged: bool = False,
    ) -> None:
        # split_files logs its own fatal conditions
        if not logged and self.logger is not None:
            self.logger.error(str(e))
        self._stage_complete(
            stage=stage, run_id=run_id, started=started, span=span, status="FAILED", fields={"code": e.code}
        )

    def _stage_complete(
        self,
        *,
        stage: str,
        run_id: str,
        started: float,
        span: Span,
        status: str = "OK",
        fields: Optional[dict[str, Any]] = None,
    ) -> None:
        duration_ms = int((time.perf_counter() - started) * 1000)
        prom_metrics.observe_stage(stage=stage, duration_ms=duration_ms, status=status)
        set_scval_attributes(span, fields or {})
        if self.obs_logger is not None:
            self.obs_logger.append(
                build_observability_event(
                    event_type="STAGE_COMPLETE",
                    stage=stage,
                    run_id=run_id,
                    occurred_at=datetime.now(timezone.utc),
                    duration_ms=duration_ms,
                    status=status,
                    fields=fields or {},
                )
            )
