from __future__ import annotations

from typing import Any, Mapping, Optional

from scval.ingest.models import PathContent
from scval.resolve.sources import MissingSource


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


class CheckedContract:
    """One metadata file together with the outcome of resolving its sources.

    Every source declared in ``metadata["sources"]`` is found in exactly one of
    ``found_sources``, ``missing_sources`` or ``invalid_sources``.
    """

    def __init__(
        self,
        metadata: dict[str, Any],
        found_sources: Mapping[str, PathContent],
        missing_sources: Mapping[str, MissingSource],
        invalid_sources: Mapping[str, str],
    ) -> None:
        self.metadata = metadata
        self.found_sources = dict(found_sources)
        self.missing_sources = dict(missing_sources)
        self.invalid_sources = dict(invalid_sources)

        self.compiled_path: Optional[str] = None
        self.name: Optional[str] = None
        settings = metadata.get("settings") or {}
        target = settings.get("compilationTarget") if isinstance(settings, dict) else None
        if isinstance(target, dict) and target:
            self.compiled_path = next(iter(target))
            self.name = _str_or_none(target[self.compiled_path])

        compiler = metadata.get("compiler")
        self.compiler_version: Optional[str] = (
            _str_or_none(compiler.get("version")) if isinstance(compiler, dict) else None
        )

    def is_valid(self) -> bool:
        return not self.missing_sources and not self.invalid_sources

    def get_info(self) -> str:
        msg = f"{self.name} ({self.compiled_path}):"
        if self.is_valid():
            return msg + "\n  Found all sources."

        lines = [msg, f"  Found sources: {len(self.found_sources)}"]
        if self.missing_sources:
            lines.append(f"  Missing sources: {len(self.missing_sources)}")
            for path, missing in self.missing_sources.items():
                line = f"    - {path} (keccak256: {missing.keccak256})"
                if missing.urls:
                    line += f" urls: {', '.join(missing.urls)}"
                lines.append(line)
        if self.invalid_sources:
            lines.append(f"  Invalid sources: {len(self.invalid_sources)}")
            for path, reason in self.invalid_sources.items():
                lines.append(f"    - {path}: {reason}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "compiled_path": self.compiled_path,
            "compiler_version": self.compiler_version,
            "valid": self.is_valid(),
            "found_sources": sorted(self.found_sources),
            "missing_sources": {p: m.to_dict() for p, m in sorted(self.missing_sources.items())},
            "invalid_sources": dict(sorted(self.invalid_sources.items())),
        }

    def __repr__(self) -> str:
        return (
            f"CheckedContract(name={self.name!r}, compiled_path={self.compiled_path!r}, "
            f"valid={self.is_valid()})"
        )
