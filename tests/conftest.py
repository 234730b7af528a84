import json
import os
import random
import sys
from pathlib import Path

import pytest

# Headless runs need an offscreen Qt platform
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Add src to sys.path so we can import streaming_toolkit
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if SRC_PATH.as_posix() not in sys.path:
    sys.path.insert(0, SRC_PATH.as_posix())

from streaming_toolkit.core.models import Fragment, VariantKind  # noqa: E402
from streaming_toolkit.engine import EngineConfig, FixedWidthMeasurer  # noqa: E402


# Common test fixtures
@pytest.fixture
def measurer():
    """Deterministic measurer: 10 units per character."""
    return FixedWidthMeasurer(10.0)


@pytest.fixture
def small_engine():
    """Engine config with a narrow horizon so tests run in few frames."""
    return EngineConfig(
        horizon_width=200.0,
        lookahead=100.0,
        entry_margin=50.0,
        element_gap=20.0,
        paragraph_gap=0.0,
        seed=7,
    )


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def fluent_narrative():
    """Fragment-map narrative with checkpoints and variants."""
    return {
        "0": {"text": "The old {lighthouse} stood", "vocab": "lamppost", "spelling": "lihgthouse"},
        "1": {"text": "at the edge of town.\n\n", "flag": "checkpoint"},
        "2": {"text": "Mara climbed the {narrow} stairs", "vocab": "hungry", "spelling": "narow"},
        "3": {"text": "with a lantern in hand."},
        "4": {"text": ""},
    }


@pytest.fixture
def narrative_file(tmp_path: Path, fluent_narrative):
    """Write the fluent narrative to a JSON file."""
    path = tmp_path / "narrative.json"
    path.write_text(json.dumps({"content": {"narrative": fluent_narrative}}), encoding="utf-8")
    return path


def make_fragment(index, text, spelling=None, vocab=None, checkpoint=False):
    """Build a fragment with canonical in slot 0 and variants below it."""
    variants = {}
    if vocab is not None:
        variants[VariantKind.VOCAB] = vocab
    if spelling is not None:
        variants[VariantKind.SPELLING] = spelling
    slots = {}
    if variants:
        slots = {VariantKind.CANONICAL: 0}
        for position, kind in enumerate(variants, start=1):
            slots[kind] = position
    return Fragment(
        index=index,
        canonical_text=text,
        variants=variants,
        is_checkpoint=checkpoint,
        slots=slots,
    )


@pytest.fixture
def fragment_factory():
    """Factory for hand-built fragments (see make_fragment)."""
    return make_fragment
