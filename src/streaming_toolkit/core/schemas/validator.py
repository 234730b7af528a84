"""
Schema Validation Utilities

Validates narrative content before it reaches the content loader.

Narratives arrive in one of two shapes (see narrative.schema.json):
- fragment map: ``{"0": {"text": ..., "vocab": ..., "flag": ...}}``
- kind map: ``{"canonical": {"0": {"text": ...}}, "spelling": {...}}``

Either shape may be wrapped as ``{"content": {"narrative": ...}}``.
Basic structural checks always run; ``strict=True`` adds full JSON Schema
validation with jsonschema.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

import jsonschema


NARRATIVE_KINDS = ("canonical", "vocab", "spelling")

# Load schemas lazily
_SCHEMAS: dict[str, dict] = {}


def _load_schema(name: str) -> dict:
    """Load a schema from the schemas directory."""
    if name not in _SCHEMAS:
        schema_path = Path(__file__).parent / f"{name}.schema.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")
        with open(schema_path, "r", encoding="utf-8") as f:
            _SCHEMAS[name] = json.load(f)
    return _SCHEMAS[name]


class ValidationError(Exception):
    """Raised when data fails schema validation."""

    def __init__(self, message: str, path: str = "", errors: list[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []


def unwrap_narrative(data: Any) -> Any:
    """Return the narrative inside a ``{"content": {"narrative": ...}}`` wrapper."""
    if isinstance(data, dict) and isinstance(data.get("content"), dict):
        content = data["content"]
        if "narrative" in content:
            return content["narrative"]
    return data


def is_kind_map(data: Dict[str, Any]) -> bool:
    """True if the narrative is keyed by variant kind rather than index."""
    return "canonical" in data and all(key in NARRATIVE_KINDS for key in data)


def validate_narrative(data: Any, *, strict: bool = False) -> None:
    """
    Validate narrative content.

    Args:
        data: Narrative (optionally wrapped) to validate
        strict: If True, also validate against the JSON Schema

    Raises:
        ValidationError: If data is invalid
    """
    narrative = unwrap_narrative(data)
    if not isinstance(narrative, dict):
        raise ValidationError(
            f"Narrative must be an object, got {type(narrative).__name__}",
            path="",
        )
    if not narrative:
        raise ValidationError("Narrative is empty", path="")

    if is_kind_map(narrative):
        for kind, entries in narrative.items():
            if not isinstance(entries, dict):
                raise ValidationError(f"{kind} must be an object", path=kind)
            for key, entry in entries.items():
                _validate_entry(entry, f"{kind}.{key}")
    else:
        for key, entry in narrative.items():
            _validate_entry(entry, str(key))

    if strict:
        schema = _load_schema("narrative")
        validator = jsonschema.Draft7Validator(schema)
        errors = sorted(validator.iter_errors(narrative), key=lambda e: list(e.absolute_path))
        if errors:
            first = errors[0]
            raise ValidationError(
                f"Schema validation failed: {first.message}",
                path=".".join(str(p) for p in first.absolute_path),
                errors=[e.message for e in errors],
            )


def _validate_entry(entry: Any, path: str) -> None:
    """Validate a single fragment entry."""
    if not isinstance(entry, dict):
        raise ValidationError(f"Entry must be an object: {entry!r}", path=path)
    if "text" not in entry:
        raise ValidationError(
            "Entry missing required fields: ['text']",
            path=path,
            errors=["Missing field: text"],
        )
    for field_name in ("text", "vocab", "spelling", "flag"):
        value = entry.get(field_name)
        if value is not None and not isinstance(value, str):
            raise ValidationError(
                f"Invalid {field_name}: {value!r} (must be a string)",
                path=f"{path}.{field_name}",
            )
