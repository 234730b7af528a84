"""
Content loading for the streaming engine.

Parses narrative JSON into records and builds session fragments.
"""

from .loader import ContentUnavailable, count_words, focal_word, load_fragments, strip_markers
from .parser import ParseError, RawRecord, load_narrative_file, parse_narrative

__all__ = [
    "ContentUnavailable",
    "ParseError",
    "RawRecord",
    "count_words",
    "focal_word",
    "load_fragments",
    "load_narrative_file",
    "parse_narrative",
    "strip_markers",
]
