"""
Module: engine.loading.parser

Purpose:
    Parse narrative JSON into ordered raw records. Both narrative shapes
    (fragment map and kind map) are normalized into the same record type
    so the loader only deals with one representation.

Key Functions:
    - parse_narrative(): Parse narrative data into RawRecords
    - load_narrative_file(): Read and parse a narrative JSON file

Key Classes:
    - RawRecord: One narrative record before fragment construction
    - ParseError: Exception for parse failures

Dependencies:
    - json (std)
    - pathlib (std)
    - streaming_toolkit.core.schemas.validator: Schema validation

Used By:
    - engine.loading.loader: Fragment construction
    - exercises: Narrative loading
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from streaming_toolkit.core.models import VariantKind
from streaming_toolkit.core.schemas.validator import (
    ValidationError,
    is_kind_map,
    unwrap_narrative,
    validate_narrative,
)

logger = logging.getLogger(__name__)

CHECKPOINT_FLAGS = frozenset({"checkpoint", "{checkpoint}"})


class ParseError(Exception):
    """Error parsing narrative content."""
    pass


@dataclass(frozen=True)
class RawRecord:
    """
    A narrative record before fragment construction.

    Attributes:
        index: Ordering key from the source
        text: Raw text, may contain ``{focal}`` markers and ``\\n\\n``
        substitutes: Replacement for the focal word, per kind
        full_variants: Complete alternate texts, per kind
        flag: Authoring flag such as "checkpoint"
    """

    index: int
    text: str
    substitutes: Dict[VariantKind, str] = field(default_factory=dict)
    full_variants: Dict[VariantKind, str] = field(default_factory=dict)
    flag: Optional[str] = None

    @property
    def is_checkpoint(self) -> bool:
        return (self.flag or "").strip().lower() in CHECKPOINT_FLAGS


def _parse_index(key: Any, path: str) -> int:
    try:
        return int(key)
    except (TypeError, ValueError):
        raise ParseError(f"Invalid fragment index {key!r} at {path}") from None


def parse_narrative(data: Any, *, strict: bool = False) -> List[RawRecord]:
    """
    Parse narrative data into records sorted by index.

    Args:
        data: Fragment map, kind map, or either wrapped in content.narrative
        strict: Validate against the JSON Schema as well

    Returns:
        RawRecords in ascending index order

    Raises:
        ParseError: If the structure cannot be parsed
    """
    try:
        validate_narrative(data, strict=strict)
    except ValidationError as e:
        raise ParseError(f"Invalid narrative at '{e.path}': {e}") from e

    narrative = unwrap_narrative(data)
    if is_kind_map(narrative):
        records = _parse_kind_map(narrative)
    else:
        records = _parse_fragment_map(narrative)

    records.sort(key=lambda r: r.index)
    logger.debug(f"Parsed {len(records)} narrative records")
    return records


def _parse_fragment_map(narrative: Dict[str, Any]) -> List[RawRecord]:
    records: List[RawRecord] = []
    for key, entry in narrative.items():
        substitutes = {
            VariantKind(kind): entry[kind]
            for kind in ("vocab", "spelling")
            if entry.get(kind)
        }
        records.append(RawRecord(
            index=_parse_index(key, str(key)),
            text=entry["text"],
            substitutes=substitutes,
            flag=entry.get("flag"),
        ))
    return records


def _parse_kind_map(narrative: Dict[str, Any]) -> List[RawRecord]:
    variants: Dict[int, Dict[VariantKind, str]] = {}
    for kind_name in ("vocab", "spelling"):
        for key, entry in narrative.get(kind_name, {}).items():
            index = _parse_index(key, f"{kind_name}.{key}")
            if entry.get("text"):
                variants.setdefault(index, {})[VariantKind(kind_name)] = entry["text"]

    records: List[RawRecord] = []
    for key, entry in narrative["canonical"].items():
        index = _parse_index(key, f"canonical.{key}")
        records.append(RawRecord(
            index=index,
            text=entry["text"],
            full_variants=variants.pop(index, {}),
            flag=entry.get("flag"),
        ))
    if variants:
        logger.warning(f"Ignoring variants without canonical text: {sorted(variants)}")
    return records


def load_narrative_file(path: Union[str, Path], *, strict: bool = True) -> List[RawRecord]:
    """
    Read a narrative JSON file and parse it.

    Args:
        path: Path to the JSON file
        strict: Validate against the JSON Schema

    Raises:
        ParseError: If the file is missing, not JSON, or malformed
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ParseError(f"Narrative file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in {path}: {e}") from e
    return parse_narrative(data, strict=strict)
