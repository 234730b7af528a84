"""
Module: engine.loading.loader

Purpose:
    Turn raw narrative records into Fragments for one session. Applies the
    difficulty's active kinds and exposure mode, strips focal-word markers,
    and assigns visual slots from the injected random source.

Key Functions:
    - load_fragments(): Build the ordered fragment list
    - strip_markers(): Remove ``{}`` focal-word markers
    - focal_word(): Extract the marked focal word

Key Classes:
    - ContentUnavailable: No usable content

Dependencies:
    - random (std)
    - re (std)

Used By:
    - engine.session: Session initialization
"""

from __future__ import annotations

import logging
import random
import re
from typing import Dict, Iterable, List, Optional

from streaming_toolkit.core.models import (
    DifficultyConfig,
    Exposure,
    Fragment,
    VariantKind,
    tokenize,
)
from .parser import RawRecord

logger = logging.getLogger(__name__)

PARAGRAPH_BREAK = "\n\n"
_FOCAL_RE = re.compile(r"\{([^{}]+)\}")
_MARKER_RE = re.compile(r"[{}]")


class ContentUnavailable(Exception):
    """No usable narrative content was supplied."""
    pass


def strip_markers(text: str) -> str:
    """
    Remove focal-word markers.

    Example:
        >>> strip_markers("The {quick} fox")
        'The quick fox'
    """
    return _MARKER_RE.sub("", text)


def focal_word(text: str) -> Optional[str]:
    """Return the first ``{marked}`` word, or None."""
    match = _FOCAL_RE.search(text)
    return match.group(1) if match else None


def _clean(text: str) -> str:
    return strip_markers(text.replace(PARAGRAPH_BREAK, " ")).strip()


def _variant_texts(record: RawRecord, difficulty: DifficultyConfig) -> Dict[VariantKind, str]:
    """Build the active variant texts of a record."""
    canonical = _clean(record.text)
    focal = focal_word(record.text)
    texts: Dict[VariantKind, str] = {}

    for kind in sorted(difficulty.active_kinds, key=lambda k: k.value):
        if kind in record.full_variants:
            text = _clean(record.full_variants[kind])
        elif kind in record.substitutes and focal is not None:
            substituted = record.text.replace(f"{{{focal}}}", record.substitutes[kind], 1)
            text = _clean(substituted)
        else:
            continue
        if not text or text == canonical:
            logger.debug(f"Fragment {record.index}: {kind} variant matches canonical, skipped")
            continue
        texts[kind] = text
    return texts


def _assign_slots(
    variants: Dict[VariantKind, str],
    difficulty: DifficultyConfig,
    rng: random.Random,
) -> tuple[Dict[VariantKind, str], Dict[VariantKind, int]]:
    """Pick the exposed items of a judged fragment and shuffle their slots."""
    kinds = sorted(variants, key=lambda k: k.value)
    exposure = difficulty.exposure

    if exposure is Exposure.SINGLE:
        if kinds and rng.random() < difficulty.variant_rate:
            shown = rng.choice(kinds)
        else:
            shown = VariantKind.CANONICAL
        return variants, {shown: 0}

    if exposure is Exposure.PAIR:
        chosen = rng.choice(kinds)
        variants = {chosen: variants[chosen]}
        kinds = [chosen]

    exposed = [VariantKind.CANONICAL] + kinds
    positions = rng.sample(range(exposure.slot_count), len(exposed))
    return variants, dict(zip(exposed, positions))


def load_fragments(
    records: Iterable[RawRecord],
    difficulty: DifficultyConfig,
    rng: random.Random,
) -> List[Fragment]:
    """
    Build the ordered fragment list for a session.

    Records with empty text are skipped. Fragments without active variants
    are auto-resolved to canonical and never enter judging.

    Args:
        records: Parsed narrative records
        difficulty: Session difficulty (active kinds, exposure)
        rng: Session random source for slot assignment

    Returns:
        Fragments in ascending index order

    Raises:
        ContentUnavailable: If no record yields a fragment
    """
    fragments: List[Fragment] = []
    for record in sorted(records, key=lambda r: r.index):
        canonical = _clean(record.text)
        if not canonical:
            logger.debug(f"Skipping empty record {record.index}")
            continue

        variants = _variant_texts(record, difficulty)
        slots: Dict[VariantKind, int] = {}
        if variants:
            variants, slots = _assign_slots(variants, difficulty, rng)

        fragments.append(Fragment(
            index=record.index,
            canonical_text=canonical,
            variants=variants,
            is_checkpoint=record.is_checkpoint,
            has_paragraph_break=PARAGRAPH_BREAK in record.text,
            slots=slots,
        ))

    if not fragments:
        raise ContentUnavailable("Narrative contains no usable fragments")

    judged = sum(1 for f in fragments if f.requires_judgment)
    logger.info(f"Loaded {len(fragments)} fragments ({judged} judged)")
    return fragments


def count_words(fragments: Iterable[Fragment]) -> int:
    """Total canonical words across fragments."""
    return sum(len(tokenize(f.canonical_text)) for f in fragments)
