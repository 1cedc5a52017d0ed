"""
Log service: classified-log and chat-message persistence.

Public API
----------
save_classified_log(db, payload)                    -> SaveLogResult
save_chat_message(db, message, conversation)        -> SaveLogResult
classify_and_save(db, user_text, classify)          -> SaveLogResult

None of these raise. A storage failure rolls the session back and comes
back as SaveLogResult(success=False, error=...). Each save is a single
INSERT into `logs`, committed once, so a failed save writes nothing.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pocketbrain.core.errors import StorageError
from pocketbrain.models.log_entry import LogEntry
from pocketbrain.services.normalizer import ClassifiedPayload, normalize_payload
from pocketbrain.services.prompts import ChatMessage
from pocketbrain.services.retrieval import classification_context
from pocketbrain.services.taxonomy import resolve_activity, resolve_domain

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Database rejected the log"
CHAT_DOMAIN = "General"
CHAT_ACTIVITY = "Chat"

# (context_text, user_text) -> JSON object, or JSON text
Classifier = Callable[[str, str], Union[dict[str, Any], str]]


@dataclass
class SaveLogResult:
    success: bool
    log_id: Optional[int] = None
    domain_id: Optional[int] = None
    activity_id: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, reason: str) -> "SaveLogResult":
        return cls(success=False, error=reason)


def _insert(db: Session, row: dict[str, Any]) -> int:
    entry = LogEntry(**row)
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry.id


def _storage_failure(db: Session, exc: Exception, what: str) -> SaveLogResult:
    db.rollback()
    detail = exc.message if isinstance(exc, StorageError) else str(exc)
    logger.error("%s failed: %s", what, detail)
    return SaveLogResult.failure(f"{SAVE_FAILED_MESSAGE}: {detail}")


# ---------------------------------------------------------------------------
# Public: classified log
# ---------------------------------------------------------------------------

def save_classified_log(db: Session, payload: Any) -> SaveLogResult:
    """
    Normalize an untrusted classifier payload, resolve its taxonomy and
    insert it. `payload` may be a raw dict or an already parsed ClassifiedPayload.
    """
    parsed = payload if isinstance(payload, ClassifiedPayload) else ClassifiedPayload.from_raw(payload)
    record = normalize_payload(parsed)

    try:
        domain_id = resolve_domain(db, record.domain_name)
        activity_id = resolve_activity(db, record.activity_name, domain_id)
        log_id = _insert(db, record.to_row(domain_id, activity_id))
    except (SQLAlchemyError, StorageError) as exc:
        return _storage_failure(db, exc, "Saving classified log")

    logger.info(
        "Saved log %s under %s/%s (domain=%s activity=%s)",
        log_id, record.domain_name, record.activity_name, domain_id, activity_id,
    )
    return SaveLogResult(
        success=True, log_id=log_id, domain_id=domain_id, activity_id=activity_id
    )


# ---------------------------------------------------------------------------
# Public: chat message
# ---------------------------------------------------------------------------

def save_chat_message(
    db: Session,
    message: ChatMessage,
    conversation_context: Optional[list[ChatMessage]] = None,
) -> SaveLogResult:
    """Store one chat turn under General / Chat with neutral scores."""
    is_user = message.role == "user"
    metadata: dict[str, Any] = {"chatRole": message.role, "isChatMessage": True}
    if conversation_context:
        metadata["conversationContext"] = [
            {
                "role": m.role,
                "content": m.content[:200],
                "timestamp": m.timestamp.isoformat() if m.timestamp else None,
            }
            for m in conversation_context
        ]

    prefix = "User chat" if is_user else "AI response"
    try:
        domain_id = resolve_domain(db, CHAT_DOMAIN)
        activity_id = resolve_activity(db, CHAT_ACTIVITY, domain_id)
        log_id = _insert(db, {
            "content": message.content,
            "description": f"{prefix}: {message.content[:100]}",
            "user_input": message.content,
            "domain_id": domain_id,
            "activity_id": activity_id,
            "mood_score": 5,
            "energy_level": 5,
            "productivity_score": 5,
            "log_metadata": json.dumps(metadata, ensure_ascii=False),
            "priority": "low",
            "ai_action": "question" if is_user else "insight",
        })
    except (SQLAlchemyError, StorageError) as exc:
        return _storage_failure(db, exc, "Saving chat message")

    return SaveLogResult(
        success=True, log_id=log_id, domain_id=domain_id, activity_id=activity_id
    )


# ---------------------------------------------------------------------------
# Public: classify then save
# ---------------------------------------------------------------------------

def _parse_generator_output(raw: Union[dict[str, Any], str]) -> Optional[dict[str, Any]]:
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    # Some models wrap the object in a Markdown fence despite being told not to.
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def classify_and_save(db: Session, user_text: str, classify: Classifier) -> SaveLogResult:
    """
    Ground the classifier in related history, run it, then save its output.
    `classify` receives the full classification prompt and the raw user text.
    """
    context = classification_context(db, user_text)

    try:
        raw = classify(context.prompt, user_text)
    except Exception as exc:  # generator is an opaque collaborator
        logger.error("Classifier failed: %s", exc)
        return SaveLogResult.failure(f"Failed to process log: {exc}")

    payload = _parse_generator_output(raw)
    if payload is None:
        logger.warning("Classifier returned unparseable output")
        return SaveLogResult.failure("Failed to process log: classifier output is not a JSON object")

    return save_classified_log(db, payload)
