"""
Module: core.models.fragments

Purpose:
    Content units that flow across the streaming horizon. A Fragment holds
    the canonical text plus alternate variants; words are the smallest
    deliverable unit and end up in the book log.

Key Classes:
    - VariantKind: Kinds of rendering a fragment can offer
    - WordToken: Word produced by tokenization (no geometry)
    - PlacedWord: Word with measured offset and width inside its fragment
    - DeliveredWord: Entry of the append-only book log
    - Fragment: Content unit with variants and judgment state

Dependencies:
    - dataclasses (std)
    - enum (std)

Used By:
    - engine.loading.loader: Builds fragments from raw records
    - engine.scheduler: Streams fragments and words
    - engine.judgment: Writes selection state
    - engine.checkpoints: Snapshots the book log
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class VariantKind(str, Enum):
    """
    Kind of rendering offered for a fragment.

    CANONICAL is the correct text. VOCAB substitutes a wrong word and
    SPELLING a misspelling of the focal word.
    """

    CANONICAL = "canonical"
    VOCAB = "vocab"
    SPELLING = "spelling"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class WordToken:
    """
    A single word as produced by tokenization.

    Attributes:
        text: Word text without surrounding whitespace
        ends_with_paragraph: True for the last word before a paragraph break
    """

    text: str
    ends_with_paragraph: bool = False

    def __post_init__(self) -> None:
        if not self.text:
            raise ValueError("WordToken text cannot be empty")


@dataclass(frozen=True)
class PlacedWord:
    """
    A word with geometry relative to the start of its fragment.

    Attributes:
        text: Word text
        offset: Horizontal offset from the fragment start
        width: Measured width including the trailing space
        ends_with_paragraph: True for the last word before a paragraph break
    """

    text: str
    offset: float
    width: float
    ends_with_paragraph: bool = False

    @property
    def right(self) -> float:
        """Offset of the trailing edge."""
        return self.offset + self.width


@dataclass(frozen=True)
class DeliveredWord:
    """
    A word that crossed the exit edge and was appended to the book log.

    Attributes:
        text: Word text as shown to the learner
        fragment_index: Index of the owning fragment
        variant: Variant the word was rendered from
        ends_with_paragraph: True if a paragraph break follows the word
    """

    text: str
    fragment_index: int
    variant: VariantKind = VariantKind.CANONICAL
    ends_with_paragraph: bool = False


def tokenize(text: str, ends_with_paragraph: bool = False) -> Tuple[WordToken, ...]:
    """
    Split text into word tokens on whitespace.

    Args:
        text: Text to split
        ends_with_paragraph: Tag the last token as ending a paragraph

    Returns:
        Tuple of tokens, empty for blank text

    Example:
        >>> [t.text for t in tokenize("The quick fox")]
        ['The', 'quick', 'fox']
    """
    words = text.split()
    tokens: List[WordToken] = []
    for position, word in enumerate(words):
        is_last = position == len(words) - 1
        tokens.append(WordToken(word, ends_with_paragraph and is_last))
    return tuple(tokens)


@dataclass
class Fragment:
    """
    Content unit streamed across the horizon.

    Text fields are fixed at load time. ``selected_variant`` and
    ``is_error`` are written by the judgment engine and reset on rollback;
    ``words`` and ``width`` are derived when the fragment is spawned.

    Attributes:
        index: Stable ordering key from the source content
        canonical_text: Correct text with markers stripped
        variants: Alternate texts keyed by kind (active kinds only)
        is_checkpoint: Content-authored checkpoint flag
        has_paragraph_break: Display hint, a paragraph ends after this fragment
        slots: Visual slot of every exposed kind
        words: Placed words of the canonical text (derived)
        width: Max measured width across exposed kinds (derived)
        selected_variant: Kind chosen by the learner, or None
        is_error: True while the fragment shows failure feedback

    Invariants:
        - A fragment without variants is auto-resolved to CANONICAL
        - Every exposed kind maps to a distinct slot
    """

    index: int
    canonical_text: str
    variants: Dict[VariantKind, str] = field(default_factory=dict)
    is_checkpoint: bool = False
    has_paragraph_break: bool = False
    slots: Dict[VariantKind, int] = field(default_factory=dict)
    words: Tuple[PlacedWord, ...] = ()
    width: float = 0.0
    selected_variant: Optional[VariantKind] = None
    is_error: bool = False

    def __post_init__(self) -> None:
        if not self.canonical_text:
            raise ValueError(f"Fragment {self.index} has empty canonical text")
        if VariantKind.CANONICAL in self.variants:
            raise ValueError(f"Fragment {self.index}: canonical is not a variant")
        if len(set(self.slots.values())) != len(self.slots):
            raise ValueError(f"Fragment {self.index}: slots must be distinct")
        if not self.slots:
            self.slots = {VariantKind.CANONICAL: 0}
        if not self.variants and self.selected_variant is None:
            self.selected_variant = VariantKind.CANONICAL

    # ─────────────────────────────────────────────────────────────────────────
    # Judgment Properties
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def requires_judgment(self) -> bool:
        """True if the fragment offers at least one active variant."""
        return bool(self.variants)

    @property
    def is_resolved(self) -> bool:
        """True once a correct selection (or auto-resolution) is recorded."""
        return self.selected_variant is not None and not self.is_error

    @property
    def exposed_kinds(self) -> Tuple[VariantKind, ...]:
        """Kinds shown to the learner, ordered by slot."""
        return tuple(sorted(self.slots, key=lambda kind: self.slots[kind]))

    @property
    def target_kind(self) -> VariantKind:
        """
        Kind the fragment is presenting as its item.

        For single-item exposure this is the shown kind; otherwise
        CANONICAL.
        """
        if len(self.slots) == 1:
            return next(iter(self.slots))
        return VariantKind.CANONICAL

    def kind_at_slot(self, slot: int) -> Optional[VariantKind]:
        """Return the kind shown in a slot, or None for an empty slot."""
        for kind, kind_slot in self.slots.items():
            if kind_slot == slot:
                return kind
        return None

    def text_for(self, kind: VariantKind) -> str:
        """Return the text rendered for a kind."""
        if kind is VariantKind.CANONICAL:
            return self.canonical_text
        try:
            return self.variants[kind]
        except KeyError:
            raise KeyError(f"Fragment {self.index} has no {kind} variant") from None

    def tokens_for(self, kind: VariantKind) -> Tuple[WordToken, ...]:
        """Tokenize the text of a kind, keeping the paragraph tag."""
        return tokenize(self.text_for(kind), self.has_paragraph_break)

    def reset(self) -> None:
        """Clear judgment state so the fragment can be streamed again."""
        self.is_error = False
        self.selected_variant = None if self.requires_judgment else VariantKind.CANONICAL
