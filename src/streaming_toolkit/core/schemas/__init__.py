"""JSON schemas and validation for narrative content."""

from .validator import ValidationError, is_kind_map, unwrap_narrative, validate_narrative

__all__ = ["ValidationError", "is_kind_map", "unwrap_narrative", "validate_narrative"]
