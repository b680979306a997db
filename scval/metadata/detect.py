from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from scval.errors import MalformedMetadataError, MetadataNotFoundError
from scval.ingest.models import PathContent


# Metadata embedded verbatim as a string value inside another JSON document.
NESTED_METADATA_REGEX = re.compile(r'"\{\\"compiler\\":\{\\"version\\".*?\},\\"version\\":1\}"')

METADATA_NOT_FOUND_MESSAGE = 'Metadata file not found. Did you include "metadata.json"?'

_NOT_JSON = object()


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return _NOT_JSON


def is_metadata(obj: Any) -> bool:
    """True if ``obj`` looks like the metadata output of a Solidity compilation.

    Only ``language`` and ``compiler`` are inspected; the rest of the document is
    consumed opaquely.
    """
    if not isinstance(obj, dict):
        return False
    return obj.get("language") == "Solidity" and bool(obj.get("compiler"))


def extract_metadata_from_string(text: str) -> Optional[dict[str, Any]]:
    obj = _loads(text)
    if obj is _NOT_JSON:
        return None
    if is_metadata(obj):
        return obj

    # double encoded output (e.g. truffle): the document is a JSON string
    if isinstance(obj, str):
        inner = _loads(obj)
        if inner is not _NOT_JSON and is_metadata(inner):
            return inner
    return None


def extract_metadata(text: str) -> Optional[dict[str, Any]]:
    metadata = extract_metadata_from_string(text)
    if metadata is not None:
        return metadata

    match = NESTED_METADATA_REGEX.search(text)
    if match is None:
        return None
    return extract_metadata_from_string(match.group(0))


def compilation_target_size(metadata: dict[str, Any]) -> Optional[int]:
    settings = metadata.get("settings")
    if not isinstance(settings, dict):
        return None
    target = settings.get("compilationTarget")
    if not isinstance(target, dict):
        return None
    return len(target)


@dataclass
class SplitFiles:
    metadata_files: list[dict[str, Any]] = field(default_factory=list)
    other_files: list[PathContent] = field(default_factory=list)
    malformed_paths: list[str] = field(default_factory=list)


def _malformed_message(paths: list[str]) -> str:
    if all(paths):
        responsible = ", ".join(paths)
    else:
        responsible = f"{len(paths)} metadata files"
    return f"Malformed settings.compilationTarget in: {responsible}"


def split_files(
    files: Iterable[PathContent],
    *,
    logger: Optional[logging.Logger] = None,
) -> SplitFiles:
    """Separates metadata files from everything else.

    Metadata whose ``settings.compilationTarget`` does not hold exactly one entry
    is excluded and reported by path. Raises when no usable metadata remains.
    """
    out = SplitFiles()
    for file in files:
        metadata = extract_metadata(file.content)
        if metadata is None:
            out.other_files.append(file)
        elif compilation_target_size(metadata) == 1:
            out.metadata_files.append(metadata)
        else:
            out.malformed_paths.append(file.path)

    if out.malformed_paths:
        msg = _malformed_message(out.malformed_paths)
        if not out.metadata_files:
            if logger is not None:
                logger.error(msg)
            raise MalformedMetadataError(msg, paths=out.malformed_paths)
        if logger is not None:
            logger.warning(msg)
    elif not out.metadata_files:
        if logger is not None:
            logger.error(METADATA_NOT_FOUND_MESSAGE)
        raise MetadataNotFoundError(METADATA_NOT_FOUND_MESSAGE)

    return out
