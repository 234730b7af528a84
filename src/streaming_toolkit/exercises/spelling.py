"""
Module: exercises.spelling

Purpose:
    Produce a plausible misspelling of a word for bubble pop, using one of
    four edits: swap adjacent letters, change a vowel, double a consonant,
    drop a letter.

Key Functions:
    - corrupt_spelling(): Misspell a word with the injected RNG

Used By:
    - exercises.bubble_pop: Misspelled variants of vocabulary records
"""

from __future__ import annotations

import random

VOWELS = "aeiou"
CONSONANTS = "bcdfghjklmnpqrstvwxyz"


def _swap_adjacent(word: str, rng: random.Random) -> str:
    pos = rng.randrange(len(word) - 1)
    chars = list(word)
    chars[pos], chars[pos + 1] = chars[pos + 1], chars[pos]
    return "".join(chars)


def _change_vowel(word: str, rng: random.Random) -> str:
    for i, char in enumerate(word):
        if char.lower() in VOWELS:
            others = VOWELS.replace(char.lower(), "")
            return word[:i] + rng.choice(others) + word[i + 1:]
    return word


def _double_consonant(word: str, rng: random.Random) -> str:
    for i, char in enumerate(word):
        if char.lower() in CONSONANTS:
            return word[:i] + char + word[i:]
    return word


def _drop_letter(word: str, rng: random.Random) -> str:
    # Keep the first and last letters
    pos = 1 + rng.randrange(len(word) - 2)
    return word[:pos] + word[pos + 1:]


def corrupt_spelling(word: str, rng: random.Random) -> str:
    """
    Return a misspelling of ``word``.

    Words shorter than three letters are returned unchanged; dropping a
    letter is only used for words longer than three. The result can equal
    the input (e.g. swapping two identical letters).

    Example:
        >>> corrupt_spelling("at", random.Random(1))
        'at'
    """
    if len(word) < 3:
        return word
    edits = [_swap_adjacent, _change_vowel, _double_consonant]
    if len(word) > 3:
        edits.append(_drop_letter)
    return rng.choice(edits)(word, rng)
