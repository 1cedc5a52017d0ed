"""
Score inference for the three mandatory well-being metrics.

Deterministic keyword tables over the lower-cased description; the first
matching rule wins, otherwise the neutral score 5 is used. Explicit values
supplied by the caller always take precedence and are only rounded/clamped.
"""
from __future__ import annotations

import math
from typing import Any, Optional

NEUTRAL_SCORE = 5
MIN_SCORE = 1
MAX_SCORE = 10

# (keywords, score), evaluated top to bottom
_MOOD_RULES: list[tuple[tuple[str, ...], int]] = [
    (("exhausted", "tired", "guilty", "sad", "depressed"), 3),
    (("good", "happy", "won", "excited", "great"), 8),
    (("okay", "fine", "normal"), 6),
]

_ENERGY_RULES: list[tuple[tuple[str, ...], int]] = [
    (("exhausted", "tired", "drained", "worn out"), 2),
    (("energetic", "excited", "active", "pumped"), 8),
]

_PRODUCTIVITY_RULES: list[tuple[tuple[str, ...], int]] = [
    (("working", "solved", "completed", "won", "finished"), 8),
    (("bug", "couldn't", "failed", "stuck"), 3),
]


def _match(text: str, rules: list[tuple[tuple[str, ...], int]]) -> int:
    lower = text.lower()
    for keywords, score in rules:
        if any(k in lower for k in keywords):
            return score
    return NEUTRAL_SCORE


def infer_mood(text: str) -> int:
    return _match(text, _MOOD_RULES)


def infer_energy(text: str) -> int:
    return _match(text, _ENERGY_RULES)


def infer_productivity(text: str) -> int:
    return _match(text, _PRODUCTIVITY_RULES)


def as_number(value: Any) -> Optional[float]:
    """Return a finite float for numeric input, None for anything else."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def clamp_score(value: float) -> int:
    """Clamp into [1, 10] and round half up."""
    bounded = max(MIN_SCORE, min(MAX_SCORE, value))
    return int(math.floor(bounded + 0.5))


def resolve_score(value: Any, text: str, infer) -> int:
    """Explicit numeric value if present, otherwise infer from text."""
    number = as_number(value)
    if number is None:
        return infer(text)
    return clamp_score(number)


def optional_score(value: Any) -> Optional[int]:
    number = as_number(value)
    return clamp_score(number) if number is not None else None


def infer_scores(
    text: str,
    mood: Any = None,
    energy: Any = None,
    productivity: Any = None,
) -> tuple[int, int, int]:
    """Return (mood, energy, productivity), each an integer in [1, 10]."""
    return (
        resolve_score(mood, text, infer_mood),
        resolve_score(energy, text, infer_energy),
        resolve_score(productivity, text, infer_productivity),
    )
