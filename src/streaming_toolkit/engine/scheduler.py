"""
Module: engine.scheduler

Purpose:
    Frame-synchronous stream of fragments and words across the horizon.
    Owns the live element list, the pending queue and the book log; asks
    the judgment engine to resolve selections and timeouts, and the
    checkpoint manager to roll back after a failure.

Key Classes:
    - SchedulerState: IDLE / STREAMING / JUDGING / DRAINING / COMPLETE
    - StreamElement: Movable word or judged fragment
    - ElementSnapshot: Read-only view of an element for rendering
    - Interaction: Learner selection
    - InvalidInteraction: Selection with no valid target
    - StreamScheduler: The per-frame update

Frame Order:
    0. Failure feedback hold (motion frozen, then rollback)
    1. Advance positions
    2. Exits: deliver words, time out judged fragments
    3. Admit new elements while there is room
    4. Update state

Dependencies:
    - collections.deque (std)
    - random (std)

Used By:
    - engine.session: Frame loop
"""

from __future__ import annotations

import itertools
import logging
import random
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, List, NamedTuple, Optional, Sequence, Set, Tuple

from streaming_toolkit.core.models import (
    DeliveredWord,
    Fragment,
    JudgingRule,
    PlacedWord,
    RecoveryPolicy,
    VariantKind,
)
from .checkpoints import Checkpoint, CheckpointManager, RollbackInconsistency
from .config import EngineConfig
from .events import CheckpointCreated, EventChannel, FragmentJudged, RolledBack, StateChanged
from .judgment import JudgmentEngine, Outcome
from .measure import MeasurementFailure, TextMeasurer

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    JUDGING = "judging"
    DRAINING = "draining"
    COMPLETE = "complete"

    def __str__(self) -> str:
        return self.value


class ElementKind(str, Enum):
    WORD = "word"
    FRAGMENT = "fragment"


class InvalidInteraction(Exception):
    """Learner selection that cannot be applied."""
    pass


@dataclass(frozen=True)
class Interaction:
    """
    A learner selection.

    Exactly one of ``slot`` or ``kind`` must be given. ``element_id`` picks
    the target; without it the oldest fragment awaiting judgment is used.
    """

    slot: Optional[int] = None
    kind: Optional[VariantKind] = None
    element_id: Optional[int] = None

    def __post_init__(self) -> None:
        if (self.slot is None) == (self.kind is None):
            raise ValueError("Interaction needs exactly one of slot or kind")


@dataclass
class StreamElement:
    element_id: int
    kind: ElementKind
    position: int
    fragment: Fragment
    x: float
    width: float
    word: Optional[PlacedWord] = None
    variant: VariantKind = VariantKind.CANONICAL

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def ends_paragraph(self) -> bool:
        if self.word is not None:
            return self.word.ends_with_paragraph
        return self.fragment.has_paragraph_break


@dataclass(frozen=True)
class ElementSnapshot:
    """
    Read-only view of a live element.

    Attributes:
        element_id: Stable id while the element is live
        kind: WORD or FRAGMENT
        x: Leading edge position
        width: Element width
        text: Word text, or canonical text for fragments
        fragment_index: Owning fragment
        options: (slot, kind, text) of every exposed item, fragments only
        is_error: True while failure feedback is shown
    """

    element_id: int
    kind: ElementKind
    x: float
    width: float
    text: str
    fragment_index: int
    options: Tuple[Tuple[int, VariantKind, str], ...] = ()
    is_error: bool = False


class _Pending(NamedTuple):
    position: int
    word: Optional[PlacedWord]
    variant: VariantKind
    first: bool


class StreamScheduler:
    """
    Move elements across the horizon one frame at a time.

    ``velocity`` (units per second) and ``spawn_interval`` (seconds) are
    written by the session, including ramping adjustments.
    """

    def __init__(
        self,
        fragments: Sequence[Fragment],
        config: EngineConfig,
        judge: JudgmentEngine,
        checkpoints: CheckpointManager,
        measurer: TextMeasurer,
        rng: random.Random,
        events: Optional[EventChannel] = None,
        recovery: RecoveryPolicy = RecoveryPolicy.ROLLBACK,
    ):
        self.fragments: List[Fragment] = list(fragments)
        self.config = config
        self.judge = judge
        self.checkpoints = checkpoints
        self.measurer = measurer
        self.rng = rng
        self.events = events or EventChannel()
        self.recovery = recovery

        self.velocity = 0.0
        self.spawn_interval = 0.0

        self._state = SchedulerState.IDLE
        self._ids = itertools.count(1)
        self._cursor = 0
        self._queue: Deque[_Pending] = deque()
        self._live: List[StreamElement] = []
        self._delivered: List[DeliveredWord] = []
        self._since_spawn = 0.0
        self._next_gap = 0.0
        self._feedback_remaining: Optional[float] = None
        self._dirty = False
        self._fallback_warned: Set[str] = set()

    # ─────────────────────────────────────────────────────────────────────────
    # Read-only State
    # ─────────────────────────────────────────────────────────────────────────

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def content_cursor(self) -> int:
        return self._cursor

    @property
    def in_feedback(self) -> bool:
        return self._feedback_remaining is not None

    @property
    def live(self) -> Tuple[StreamElement, ...]:
        return tuple(self._live)

    def delivered(self) -> Tuple[DeliveredWord, ...]:
        return tuple(self._delivered)

    def elements(self) -> Tuple[ElementSnapshot, ...]:
        return tuple(self._snapshot(e) for e in self._live)

    def pending_judgments(self) -> int:
        return sum(
            1 for e in self._live
            if e.kind is ElementKind.FRAGMENT and not e.fragment.is_error
        )

    def _snapshot(self, element: StreamElement) -> ElementSnapshot:
        fragment = element.fragment
        if element.kind is ElementKind.WORD:
            return ElementSnapshot(
                element.element_id, element.kind, element.x, element.width,
                element.word.text, fragment.index,
            )
        options = tuple(
            (fragment.slots[kind], kind, fragment.text_for(kind))
            for kind in fragment.exposed_kinds
        )
        return ElementSnapshot(
            element.element_id, element.kind, element.x, element.width,
            fragment.canonical_text, fragment.index, options, fragment.is_error,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def begin(self) -> None:
        """Leave IDLE and admit the first elements."""
        if self._state is not SchedulerState.IDLE:
            return
        self._set_state(SchedulerState.STREAMING)
        self._admit()
        self._update_state()

    def step(self, dt: float) -> None:
        """Advance the stream by one frame of ``dt`` seconds."""
        if self._state in (SchedulerState.IDLE, SchedulerState.COMPLETE):
            return

        if self._feedback_remaining is not None:
            self._feedback_remaining -= dt
            if self._feedback_remaining <= 0:
                self._recover()
            self._update_state()
            return

        distance = self.velocity * dt
        for element in self._live:
            element.x -= distance
        self._since_spawn += dt

        self._process_exits()
        if self._feedback_remaining is not None and self._feedback_remaining <= 0:
            self._recover()
        if self._feedback_remaining is None:
            self._admit()
        self._update_state()

    # ─────────────────────────────────────────────────────────────────────────
    # Interactions
    # ─────────────────────────────────────────────────────────────────────────

    def apply_interaction(self, interaction: Interaction) -> Outcome:
        """
        Judge a learner selection against its target fragment.

        Raises:
            InvalidInteraction: No matching fragment, empty slot, or kind
                not offered
        """
        if self._feedback_remaining is not None:
            raise InvalidInteraction("Failure feedback in progress")
        target = self._find_target(interaction.element_id)
        fragment = target.fragment

        if interaction.kind is not None:
            kind = interaction.kind
        else:
            kind = fragment.kind_at_slot(interaction.slot)
            if kind is None:
                raise InvalidInteraction(f"Slot {interaction.slot} is empty")
        if self.judge.difficulty.rule is JudgingRule.CANONICAL and kind not in fragment.slots:
            raise InvalidInteraction(f"Fragment {fragment.index} does not offer {kind}")

        outcome = self.judge.judge(fragment, kind)
        self._dirty = True
        self.events.publish(FragmentJudged(outcome))
        if outcome.correct:
            self._resolve(target)
        else:
            self._fail(target)
        self._update_state()
        return outcome

    def _find_target(self, element_id: Optional[int]) -> StreamElement:
        candidates = [
            e for e in self._live
            if e.kind is ElementKind.FRAGMENT and not e.fragment.is_error
        ]
        if element_id is None:
            if not candidates:
                raise InvalidInteraction("No fragment awaiting judgment")
            return candidates[0]
        for element in candidates:
            if element.element_id == element_id:
                return element
        raise InvalidInteraction(f"Element {element_id} is not awaiting judgment")

    # ─────────────────────────────────────────────────────────────────────────
    # Frame Phases
    # ─────────────────────────────────────────────────────────────────────────

    def _process_exits(self) -> None:
        for element in list(self._live):
            if element.right >= 0:
                # Elements never overlap, so trailing edges are ordered too
                break
            if element.kind is ElementKind.WORD:
                self._deliver(element)
                continue
            outcome = self.judge.timeout(element.fragment)
            self._dirty = True
            self.events.publish(FragmentJudged(outcome))
            if outcome.correct:
                self._resolve(element)
            else:
                self._fail(element)
                if self._feedback_remaining is not None:
                    return

    def _admit(self) -> None:
        limit = self.config.horizon_width + self.config.lookahead
        while True:
            if not self._queue:
                if self._cursor >= len(self.fragments):
                    return
                self._expand(self._cursor)
                self._cursor += 1
                continue

            item = self._queue[0]
            x = self._entry_x(item)
            if self._live and x > limit:
                return
            if item.first:
                if item.word is None and self.pending_judgments() >= self.config.max_pending_judgments:
                    return
                if self._since_spawn < self._next_gap:
                    return
                self._on_exposed(item.position)
                self._since_spawn = 0.0
                self._next_gap = self._draw_spawn_gap()

            self._queue.popleft()
            self._live.append(self._make_element(item, x))
            self._dirty = True

    def _entry_x(self, item: _Pending) -> float:
        if not self._live:
            return self.config.horizon_width + self.config.entry_margin
        last = self._live[-1]
        if not item.first and last.position == item.position:
            return last.right
        spacing = self.config.element_gap
        if last.ends_paragraph:
            spacing += self.config.paragraph_gap
        return max(last.right + spacing, self.config.horizon_width)

    def _draw_spawn_gap(self) -> float:
        base = self.spawn_interval
        if base <= 0:
            return 0.0
        jitter = self.config.spawn_jitter_seconds
        if jitter > 0:
            base += self.rng.uniform(-jitter, jitter)
        return max(0.0, base)

    def _update_state(self) -> None:
        if self._state in (SchedulerState.IDLE, SchedulerState.COMPLETE):
            return
        exhausted = self._cursor >= len(self.fragments) and not self._queue
        if exhausted and not self._live and self._feedback_remaining is None:
            new_state = SchedulerState.COMPLETE
        elif any(e.kind is ElementKind.FRAGMENT for e in self._live):
            new_state = SchedulerState.JUDGING
        elif exhausted:
            new_state = SchedulerState.DRAINING
        else:
            new_state = SchedulerState.STREAMING
        self._set_state(new_state)

    def _set_state(self, new_state: SchedulerState) -> None:
        if new_state is self._state:
            return
        old = self._state
        self._state = new_state
        logger.debug(f"Stream state {old} -> {new_state}")
        self.events.publish(StateChanged("stream", old.value, new_state.value))

    # ─────────────────────────────────────────────────────────────────────────
    # Layout
    # ─────────────────────────────────────────────────────────────────────────

    def _measure(self, text: str) -> float:
        try:
            return self.measurer.measure(text, self.config.font)
        except MeasurementFailure as e:
            if text not in self._fallback_warned:
                self._fallback_warned.add(text)
                logger.warning(f"{e}; using estimated width")
            return len(text) * self.config.fallback_char_width

    def _layout(self, fragment: Fragment, kind: VariantKind) -> Tuple[PlacedWord, ...]:
        words: List[PlacedWord] = []
        offset = 0.0
        for token in fragment.tokens_for(kind):
            width = self._measure(token.text + " ")
            words.append(PlacedWord(token.text, offset, width, token.ends_with_paragraph))
            offset += width
        return tuple(words)

    def _display_kind(self, fragment: Fragment) -> VariantKind:
        selected = fragment.selected_variant
        if selected is not None and selected in fragment.slots:
            return selected
        return fragment.target_kind

    def _expand(self, position: int) -> None:
        fragment = self.fragments[position]
        fragment.words = self._layout(fragment, VariantKind.CANONICAL)
        widths = [sum(w.width for w in self._layout(fragment, kind)) for kind in fragment.exposed_kinds]
        widths.append(sum(w.width for w in fragment.words))
        fragment.width = max(widths)

        if fragment.requires_judgment and not fragment.is_resolved:
            self._queue.append(_Pending(position, None, VariantKind.CANONICAL, True))
            return
        if fragment.requires_judgment and self.config.release_resolved:
            # Already popped before a rollback; nothing to show again
            return
        kind = self._display_kind(fragment)
        for i, word in enumerate(self._layout(fragment, kind)):
            self._queue.append(_Pending(position, word, kind, i == 0))

    def _make_element(self, item: _Pending, x: float) -> StreamElement:
        fragment = self.fragments[item.position]
        if item.word is None:
            return StreamElement(
                next(self._ids), ElementKind.FRAGMENT, item.position, fragment, x, fragment.width,
            )
        return StreamElement(
            next(self._ids), ElementKind.WORD, item.position, fragment, x, item.word.width,
            word=item.word, variant=item.variant,
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Delivery, Resolution and Recovery
    # ─────────────────────────────────────────────────────────────────────────

    def _deliver(self, element: StreamElement) -> None:
        self._live.remove(element)
        self._delivered.append(DeliveredWord(
            element.word.text, element.fragment.index, element.variant,
            element.word.ends_with_paragraph,
        ))
        self._dirty = True

    def _resolve(self, element: StreamElement) -> None:
        """Turn a correctly judged fragment into words, or release it."""
        fragment = element.fragment
        kind = self._display_kind(fragment)
        at = self._live.index(element)
        if self.config.release_resolved:
            del self._live[at]
            for token in fragment.tokens_for(kind):
                self._delivered.append(DeliveredWord(
                    token.text, fragment.index, kind, token.ends_with_paragraph,
                ))
            return
        words = [
            StreamElement(
                next(self._ids), ElementKind.WORD, element.position, fragment,
                element.x + word.offset, word.width, word=word, variant=kind,
            )
            for word in self._layout(fragment, kind)
        ]
        self._live[at:at + 1] = words

    def _fail(self, element: StreamElement) -> None:
        fragment = element.fragment
        if self.recovery is RecoveryPolicy.CONTINUE:
            at = self._live.index(element)
            if self.config.release_resolved:
                del self._live[at]
            else:
                self._live[at:at + 1] = [
                    StreamElement(
                        next(self._ids), ElementKind.WORD, element.position, fragment,
                        element.x + word.offset, word.width, word=word,
                    )
                    for word in fragment.words
                ]
            return
        logger.debug(f"Fragment {fragment.index} failed, holding feedback")
        self._feedback_remaining = self.config.feedback_seconds

    def _recover(self) -> None:
        self._feedback_remaining = None
        checkpoint = self.checkpoints.rollback(self)
        if checkpoint is not None:
            self.events.publish(RolledBack(
                checkpoint.fragment_index, checkpoint.content_cursor, checkpoint.score,
            ))

    def _on_exposed(self, position: int) -> None:
        fragment = self.fragments[position]
        judged_next = (
            self.config.checkpoint_before_judged
            and fragment.requires_judgment
            and not fragment.is_resolved
        )
        if fragment.is_checkpoint or judged_next:
            self.create_checkpoint(position)

    def create_checkpoint(self, position: int) -> Checkpoint:
        """
        Snapshot the stream before the fragment at ``position`` is exposed.

        The cursor is the earliest fragment still in flight so no
        undelivered word is lost on restore.
        """
        cursor = min((e.position for e in self._live), default=position)
        cursor = min(cursor, position)
        boundary = self.fragments[cursor].index
        delivered = tuple(w for w in self._delivered if w.fragment_index < boundary)
        resolved = tuple(
            (p, self.fragments[p].selected_variant)
            for p in range(cursor, position)
            if self.fragments[p].requires_judgment and self.fragments[p].is_resolved
        )
        checkpoint = self.checkpoints.add(Checkpoint(
            content_cursor=cursor,
            delivered=delivered,
            score=self.judge.score,
            fragment_index=self.fragments[position].index,
            resolved=resolved,
        ))
        self.events.publish(CheckpointCreated(checkpoint.fragment_index, cursor))
        return checkpoint

    def restore(self, checkpoint: Checkpoint) -> None:
        """
        Restore stream state from a checkpoint.

        Raises:
            RollbackInconsistency: If nothing changed since the last restore
        """
        if not self._dirty:
            raise RollbackInconsistency(
                f"Stream already at checkpoint cursor {checkpoint.content_cursor}"
            )
        cursor = checkpoint.content_cursor
        self._live.clear()
        self._queue.clear()
        for fragment in self.fragments[cursor:]:
            fragment.reset()
        for position, kind in checkpoint.resolved:
            self.fragments[position].selected_variant = kind
        self._delivered = list(checkpoint.delivered)
        self._cursor = cursor
        self.judge.restore(checkpoint.score)
        self._feedback_remaining = None
        self._since_spawn = 0.0
        self._next_gap = 0.0
        self._dirty = False
