"""
Module: engine.measure

Purpose:
    Text measurement for laying out words on the horizon. Measurements are
    deterministic within a session and cached per text.

Key Classes:
    - TextMeasurer: Protocol consumed by the scheduler
    - PillowTextMeasurer: Measures with a PIL font
    - FixedWidthMeasurer: Per-character estimate (headless runs, tests)
    - MeasurementFailure: Raised when a width cannot be measured

Dependencies:
    - PIL.ImageFont: Font loading and text length

Used By:
    - engine.scheduler: Word and fragment widths
    - engine.session: Default measurer
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, Protocol

from PIL import ImageFont

from .config import FontSpec

logger = logging.getLogger(__name__)


class MeasurementFailure(Exception):
    """Text width could not be measured."""
    pass


class TextMeasurer(Protocol):
    def measure(self, text: str, font: FontSpec) -> float:
        ...


class FixedWidthMeasurer:
    """
    Estimate widths as characters x a fixed width.

    Example:
        >>> FixedWidthMeasurer(10).measure("abc ", FontSpec())
        40.0
    """

    def __init__(self, char_width: float = 12.0):
        if char_width <= 0:
            raise ValueError(f"char_width must be positive: {char_width}")
        self.char_width = char_width

    def measure(self, text: str, font: FontSpec) -> float:
        return float(len(text)) * self.char_width


class PillowTextMeasurer:
    """
    Measure text with a Pillow font.

    The font named by the FontSpec is loaded once per spec; if it cannot be
    found, Pillow's scalable default font is used at the same size.
    Widths are kept in a least-recently-used cache of ``cache_size`` entries.
    """

    def __init__(self, cache_size: int = 4096) -> None:
        if cache_size < 1:
            raise ValueError(f"cache_size must be at least 1: {cache_size}")
        self._fonts: Dict[FontSpec, ImageFont.FreeTypeFont] = {}
        self._width = lru_cache(maxsize=cache_size)(self._measure_uncached)

    def _font(self, spec: FontSpec):
        font = self._fonts.get(spec)
        if font is None:
            try:
                font = ImageFont.truetype(spec.family, spec.size)
            except OSError:
                logger.warning(f"Font {spec.family!r} not found, using Pillow default")
                font = ImageFont.load_default(size=spec.size)
            self._fonts[spec] = font
        return font

    def _measure_uncached(self, text: str, font: FontSpec) -> float:
        try:
            return float(self._font(font).getlength(text))
        except (OSError, ValueError, UnicodeError) as e:
            raise MeasurementFailure(f"Cannot measure {text!r}: {e}") from e

    def measure(self, text: str, font: FontSpec) -> float:
        return self._width(text, font)

    def cache_info(self):
        """Hit and size statistics of the width cache."""
        return self._width.cache_info()

    def clear_cache(self) -> None:
        self._width.cache_clear()
