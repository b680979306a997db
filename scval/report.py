from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import jsonschema

from scval.checked_contract import CheckedContract
from scval.ingest.models import PathContent


@lru_cache(maxsize=1)
def _report_schema() -> dict[str, Any]:
    root = Path(__file__).resolve().parents[1]
    schema_path = root / "schemas" / "check_report.schema.json"
    schema = json.loads(schema_path.read_text(encoding="utf-8"))
    schema_id = schema.get("$id")
    if not isinstance(schema_id, str) or not schema_id:
        raise ValueError("check_report.schema.json missing $id")
    return schema


def report_schema_id_and_version() -> tuple[str, str]:
    schema_id = str(_report_schema()["$id"])
    return schema_id, schema_id.rsplit(":", 1)[-1]


@dataclass
class CheckReport:
    contracts: list[CheckedContract]
    ignored: list[str] = field(default_factory=list)
    unused: list[PathContent] = field(default_factory=list)
    scval_version: Optional[str] = None

    @property
    def ok(self) -> bool:
        return all(c.is_valid() for c in self.contracts)

    def to_dict(self) -> dict[str, Any]:
        schema_id, schema_version = report_schema_id_and_version()
        unused = []
        for f in self.unused:
            entry = {"path": f.path}
            if f.origin is not None:
                entry["origin"] = f.origin
            unused.append(entry)
        return {
            "schema_id": schema_id,
            "schema_version": schema_version,
            "scval_version": self.scval_version,
            "ok": self.ok,
            "contracts": [c.to_dict() for c in self.contracts],
            "ignored": list(self.ignored),
            "unused": unused,
        }


def validate_report(payload: dict[str, Any]) -> None:
    validator = jsonschema.Draft202012Validator(_report_schema())
    errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        raise ValueError(f"check report schema validation failed: {errors[0].message}")
