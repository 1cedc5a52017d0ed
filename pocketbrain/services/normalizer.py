"""
Log normalizer: untrusted classifier payload -> canonical LogEntry record.

The classifier documents most of its fields as required but honours that
contract loosely, so nothing here trusts the payload shape. Every field is
read independently; a wrong type, an out-of-range number or an unknown enum
value becomes NULL (or the documented default) and never fails the save.

Public API
----------
ClassifiedPayload.from_raw(obj)          -> ClassifiedPayload
normalize_payload(payload)               -> NormalizedLog      (pure, no DB)
build_metadata(metadata, action, context) -> dict | None
"""
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from pocketbrain.core.config import settings
from pocketbrain.services.scoring import (
    as_number,
    infer_scores,
    optional_score,
)

PLACEHOLDER_DESCRIPTION = "No description provided"
DEFAULT_CLASSIFICATION = "General"
DEFAULT_ACTION = "acknowledge"
DEFAULT_PRIORITY = "medium"

TIMES_OF_DAY = ("morning", "afternoon", "evening", "night")
SENTIMENTS = ("positive", "negative", "neutral")

_CENTS = Decimal("0.01")
# Numeric(12, 2) holds at most 10 integer digits.
_MAX_AMOUNT = Decimal(10) ** 10
_MAX_INT = 2**31 - 1


# ---------------------------------------------------------------------------
# Tiny coercions
# ---------------------------------------------------------------------------

def _dict_or_none(value: Any) -> Optional[dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _text(value: Any) -> str:
    """Trimmed string, or '' for anything that is not a string."""
    return value.strip() if isinstance(value, str) else ""


def _jdump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# Input record
# ---------------------------------------------------------------------------

@dataclass
class ClassifiedPayload:
    """
    Optional-field view of the classifier output.

    Nested sections (`log`, `classification`, `action`) are flattened; the
    free-form `metadata` / `context` dicts are kept as-is. `None` means the
    caller did not supply a usable value.
    """
    description: str = ""
    user_input: str = ""
    domain: Optional[str] = None
    activity: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    action: Optional[dict[str, Any]] = None
    context: Optional[dict[str, Any]] = None
    mood_score: Any = None
    energy_level: Any = None
    productivity_score: Any = None
    stress_level: Any = None
    satisfaction_score: Any = None
    location: Any = None
    time_of_day: Any = None
    duration_minutes: Any = None
    amount: Any = None
    currency: Any = None
    sentiment: Any = None
    related_log_ids: Any = None
    goal_id: Any = None

    @classmethod
    def from_raw(cls, obj: Any) -> "ClassifiedPayload":
        if not isinstance(obj, dict):
            return cls()
        log = _dict_or_none(obj.get("log")) or {}
        classification = _dict_or_none(obj.get("classification")) or {}
        return cls(
            description=_text(log.get("description")),
            user_input=_text(log.get("user_input")),
            domain=_text(classification.get("domain")) or None,
            activity=_text(classification.get("activity")) or None,
            metadata=_dict_or_none(obj.get("metadata")),
            action=_dict_or_none(obj.get("action")),
            context=_dict_or_none(obj.get("context")),
            mood_score=obj.get("moodScore"),
            energy_level=obj.get("energyLevel"),
            productivity_score=obj.get("productivityScore"),
            stress_level=obj.get("stressLevel"),
            satisfaction_score=obj.get("satisfactionScore"),
            location=obj.get("location"),
            time_of_day=obj.get("timeOfDay"),
            duration_minutes=obj.get("durationMinutes"),
            amount=obj.get("amount"),
            currency=obj.get("currency"),
            sentiment=obj.get("sentiment"),
            related_log_ids=obj.get("relatedLogIds"),
            goal_id=obj.get("goalId"),
        )

    @property
    def action_name(self) -> Optional[str]:
        return _text((self.action or {}).get("action")) or None

    @property
    def action_priority(self) -> Optional[str]:
        return _text((self.action or {}).get("priority")) or None


# ---------------------------------------------------------------------------
# Output record
# ---------------------------------------------------------------------------

@dataclass
class NormalizedLog:
    """Canonical insert record, minus the taxonomy ids resolved at save time."""
    content: str
    description: str
    user_input: str
    domain_name: str
    activity_name: str
    mood_score: int
    energy_level: int
    productivity_score: int
    priority: str
    stress_level: Optional[int] = None
    satisfaction_score: Optional[int] = None
    metadata: Optional[dict[str, Any]] = None
    location: Optional[str] = None
    time_of_day: Optional[str] = None
    duration_minutes: Optional[int] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    sentiment: Optional[str] = None
    related_log_ids: Optional[list[int]] = field(default=None)
    goal_id: Optional[int] = None
    ai_action: Optional[str] = None

    def to_row(self, domain_id: int, activity_id: int) -> dict[str, Any]:
        """Column values for a single LogEntry insert."""
        return {
            "content": self.content,
            "description": self.description,
            "user_input": self.user_input,
            "domain_id": domain_id,
            "activity_id": activity_id,
            "mood_score": self.mood_score,
            "energy_level": self.energy_level,
            "productivity_score": self.productivity_score,
            "stress_level": self.stress_level,
            "satisfaction_score": self.satisfaction_score,
            "log_metadata": _jdump(self.metadata) if self.metadata else None,
            "location": self.location,
            "time_of_day": self.time_of_day,
            "duration_minutes": self.duration_minutes,
            "amount": self.amount,
            "currency": self.currency,
            "sentiment": self.sentiment,
            "related_log_ids": _jdump(self.related_log_ids) if self.related_log_ids else None,
            "goal_id": self.goal_id,
            "priority": self.priority,
            "ai_action": self.ai_action,
        }


# ---------------------------------------------------------------------------
# Field shapers
# ---------------------------------------------------------------------------

def _positive_int(value: Any) -> Optional[int]:
    """Positive numbers rounded half up, never below 1; None otherwise."""
    number = as_number(value)
    if number is None or number <= 0 or number > _MAX_INT:
        return None
    return max(1, int(math.floor(number + 0.5)))


def shape_location(value: Any) -> Optional[str]:
    return _text(value) or None


def shape_choice(value: Any, allowed: tuple[str, ...]) -> Optional[str]:
    lowered = _text(value).lower()
    return lowered if lowered in allowed else None


def shape_amount(amount: Any, currency: Any) -> tuple[Optional[Decimal], Optional[str]]:
    """Keep the pair only for a strictly positive amount; default the currency."""
    if isinstance(amount, bool):
        return None, None
    try:
        value = Decimal(str(amount).strip()) if isinstance(amount, (int, float, str)) else None
    except InvalidOperation:
        value = None
    if value is None or not value.is_finite() or not 0 < value < _MAX_AMOUNT:
        return None, None
    # sub-cent amounts quantize to 0.00
    value = value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    if not 0 < value < _MAX_AMOUNT:
        return None, None
    code = _text(currency).upper() or settings.DEFAULT_CURRENCY
    return value, code


def shape_related_ids(value: Any) -> Optional[list[int]]:
    if not isinstance(value, list):
        return None
    ids = [v for v in value if isinstance(v, int) and not isinstance(v, bool)]
    return ids or None


def build_metadata(
    metadata: Optional[dict[str, Any]],
    action: Optional[dict[str, Any]],
    context: Optional[dict[str, Any]],
) -> Optional[dict[str, Any]]:
    """
    Activity metadata plus the classifier's action/priority/context.

    The aiAction / aiPriority defaults are attached only when the caller sent
    non-empty metadata or an action/context section at all; otherwise the
    result is None. An empty dict is never returned.
    """
    if metadata:
        result: dict[str, Any] = dict(metadata)
    elif action is not None or context is not None:
        result = {}
    else:
        return None

    action = action or {}
    result["aiAction"] = _text(action.get("action")) or DEFAULT_ACTION
    result["aiPriority"] = _text(action.get("priority")) or DEFAULT_PRIORITY
    if context:
        result["aiContext"] = context
    return result or None


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def normalize_payload(payload: ClassifiedPayload) -> NormalizedLog:
    description = payload.description
    user_input = payload.user_input

    if not description:
        description = user_input or PLACEHOLDER_DESCRIPTION
    if not user_input:
        user_input = description

    mood, energy, productivity = infer_scores(
        description,
        mood=payload.mood_score,
        energy=payload.energy_level,
        productivity=payload.productivity_score,
    )
    amount, currency = shape_amount(payload.amount, payload.currency)

    return NormalizedLog(
        content=user_input,
        description=description,
        user_input=user_input,
        domain_name=payload.domain or DEFAULT_CLASSIFICATION,
        activity_name=payload.activity or DEFAULT_CLASSIFICATION,
        mood_score=mood,
        energy_level=energy,
        productivity_score=productivity,
        stress_level=optional_score(payload.stress_level),
        satisfaction_score=optional_score(payload.satisfaction_score),
        metadata=build_metadata(payload.metadata, payload.action, payload.context),
        location=shape_location(payload.location),
        time_of_day=shape_choice(payload.time_of_day, TIMES_OF_DAY),
        duration_minutes=_positive_int(payload.duration_minutes),
        amount=amount,
        currency=currency,
        sentiment=shape_choice(payload.sentiment, SENTIMENTS),
        related_log_ids=shape_related_ids(payload.related_log_ids),
        goal_id=_positive_int(payload.goal_id),
        priority=payload.action_priority or DEFAULT_PRIORITY,
        ai_action=payload.action_name,
    )
