from __future__ import annotations

from typing import Optional


class ValidationError(RuntimeError):
    """Fatal validation failure; aborts the whole check call."""

    code = "VALIDATION_FAILED"

    def __init__(self, message: str, *, detail: Optional[str] = None) -> None:
        self.detail = detail
        super().__init__(message)


class MetadataNotFoundError(ValidationError):
    code = "METADATA_NOT_FOUND"


class MalformedMetadataError(ValidationError):
    code = "MALFORMED_COMPILATION_TARGET"

    def __init__(self, message: str, *, paths: Optional[list[str]] = None) -> None:
        self.paths = list(paths or [])
        super().__init__(message, detail=", ".join(p for p in self.paths if p) or None)


class NonexistentPathError(ValidationError):
    code = "NONEXISTENT_PATH"

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Encountered a nonexistent path: {path}", detail=path)


class UndecodableFileError(ValidationError):
    code = "UNDECODABLE_FILE"

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot decode {path or '<unnamed>'} as UTF-8: {reason}", detail=path)


class ArchiveExtractionError(ValidationError):
    code = "ARCHIVE_EXTRACTION_FAILED"

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot extract archive {path or '<unnamed>'}: {reason}", detail=path)


def reason_code(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return exc.code
    return "INTERNAL_ERROR"
