"""
Retrieval engine: relevant and recent past logs as generator context.

Public API
----------
search_logs(db, query, token_filter, limit)    -> list[LogSummary]   (raises StorageError)
recent_logs(db, days, now)                     -> list[LogSummary]   (raises StorageError)
merge_context(search_results, recent_results)  -> list[LogSummary]   (pure)
search_related(db, query, token_filter)        -> list[LogSummary]   (never raises)
fetch_recent(db, days)                         -> list[LogSummary]   (never raises)
classification_context(db, user_text)          -> ClassificationContext (never raises)
assemble_chat_context(db, query, messages)     -> ChatContext        (never raises)

Ordering guarantee: in merged context every search hit precedes every
recency-only entry, whatever their timestamps.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Hashable, Optional

from sqlalchemy import Select, Text, func, literal, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pocketbrain.core.config import settings
from pocketbrain.core.errors import StorageError
from pocketbrain.models.activity import Activity
from pocketbrain.models.domain import Domain
from pocketbrain.models.log_entry import LogEntry
from pocketbrain.services.prompts import (
    CHAT_HEADER,
    CLASSIFICATION_EMPTY,
    CLASSIFICATION_HEADER,
    ChatMessage,
    build_chat_prompt,
    build_classification_prompt,
    format_conversation,
    format_memory_block,
)

logger = logging.getLogger(__name__)

TokenFilter = Callable[[str], list[str]]


# ---------------------------------------------------------------------------
# Token filters
# ---------------------------------------------------------------------------

STOP_WORDS = frozenset({
    "the", "was", "were", "this", "that", "with", "from", "have", "has", "had",
    "what", "when", "where", "how", "why", "did", "do", "does", "about", "last",
    "week", "month", "year", "day", "time", "tell", "me", "you", "your", "my",
    "i", "am", "is", "are", "can", "could", "would", "should", "will", "shall",
})

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_NON_WORD_RE = re.compile(r"[^\w]")


def minimal_filter(query: str) -> list[str]:
    """Whitespace tokens longer than 3 characters, case preserved."""
    return [t for t in query.split() if len(t) > 3]


def keyword_filter(query: str) -> list[str]:
    """Lower-cased, punctuation-free tokens longer than 2 chars, minus stop words."""
    cleaned = _PUNCTUATION_RE.sub(" ", query.lower())
    return [t for t in cleaned.split() if len(t) > 2 and t not in STOP_WORDS]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

def _jload(text: Optional[str]) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except (ValueError, TypeError):
        return None


@dataclass
class LogSummary:
    """A stored log joined with its domain / activity names."""
    id: Optional[int]
    date: Optional[datetime]
    content: str
    description: str
    user_input: str
    domain: Optional[str] = None
    activity: Optional[str] = None
    mood_score: Optional[int] = None
    energy_level: Optional[int] = None
    productivity_score: Optional[int] = None
    stress_level: Optional[int] = None
    satisfaction_score: Optional[int] = None
    metadata: Optional[dict[str, Any]] = None
    location: Optional[str] = None
    time_of_day: Optional[str] = None
    duration_minutes: Optional[int] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    sentiment: Optional[str] = None
    priority: Optional[str] = None

    @property
    def identity(self) -> Hashable:
        """Id, falling back to the creation timestamp."""
        return self.id if self.id is not None else self.date

    @classmethod
    def from_row(cls, log: LogEntry, domain: Optional[str], activity: Optional[str]) -> "LogSummary":
        metadata = _jload(log.log_metadata)
        return cls(
            id=log.id,
            date=log.created_at,
            content=log.content,
            description=log.description or log.content,
            user_input=log.user_input,
            domain=domain,
            activity=activity,
            mood_score=log.mood_score,
            energy_level=log.energy_level,
            productivity_score=log.productivity_score,
            stress_level=log.stress_level,
            satisfaction_score=log.satisfaction_score,
            metadata=metadata if isinstance(metadata, dict) else None,
            location=log.location,
            time_of_day=log.time_of_day,
            duration_minutes=log.duration_minutes,
            amount=log.amount,
            currency=log.currency,
            sentiment=log.sentiment,
            priority=log.priority,
        )


@dataclass
class ClassificationContext:
    logs: list[LogSummary]
    memory_block: str
    prompt: str


@dataclass
class ChatContext:
    """Everything the chat flow needs to prompt the generator."""
    keywords: list[str]
    search_hits: int
    recent_days: int
    logs: list[LogSummary] = field(default_factory=list)
    memory_block: str = ""
    conversation_block: str = ""
    prompt: str = ""


# ---------------------------------------------------------------------------
# Query building
# ---------------------------------------------------------------------------

def joined_logs_query() -> Select:
    """LogEntry rows with domain / activity names, newest first."""
    return (
        select(LogEntry, Domain.name, Activity.name)
        .outerjoin(Domain, LogEntry.domain_id == Domain.id)
        .outerjoin(Activity, LogEntry.activity_id == Activity.id)
        .order_by(LogEntry.created_at.desc(), LogEntry.id.desc())
    )


def to_summaries(db: Session, stmt: Select) -> list[LogSummary]:
    return [LogSummary.from_row(log, d, a) for log, d, a in db.execute(stmt).all()]


def _document():
    """description || ' ' || user_input || ' ' || content"""
    return (
        func.coalesce(LogEntry.description, "")
        + literal(" ")
        + func.coalesce(LogEntry.user_input, "")
        + literal(" ")
        + func.coalesce(LogEntry.content, "")
    )


def _text_match(dialect: str, tokens: list[str]):
    document = _document()
    if dialect == "postgresql":
        ts_query = " | ".join(tokens)
        return func.to_tsvector("english", document).op("@@")(
            func.to_tsquery("english", ts_query)
        )
    lowered = func.lower(document, type_=Text)
    return or_(*(lowered.contains(t.lower(), autoescape=True) for t in tokens))


# ---------------------------------------------------------------------------
# Raw operations (raise StorageError)
# ---------------------------------------------------------------------------

def search_logs(
    db: Session,
    query: str,
    token_filter: TokenFilter = minimal_filter,
    limit: Optional[int] = None,
) -> list[LogSummary]:
    """
    Full-text search over description, user_input and content.
    Surviving tokens are OR-ed. No tokens -> [] without touching the DB.
    """
    tokens = [_NON_WORD_RE.sub("", t) for t in token_filter(query or "")]
    tokens = [t for t in tokens if t]
    if not tokens:
        return []

    try:
        dialect = db.get_bind().dialect.name
        stmt = (
            joined_logs_query()
            .where(_text_match(dialect, tokens))
            .limit(limit or settings.SEARCH_RESULT_LIMIT)
        )
        return to_summaries(db, stmt)
    except SQLAlchemyError as exc:
        raise StorageError("search_logs", str(exc)) from exc


def recent_logs(
    db: Session,
    days: int,
    now: Optional[datetime] = None,
) -> list[LogSummary]:
    """Logs created within [now - days, now], newest first."""
    end = now or datetime.now(tz=timezone.utc)
    start = end - timedelta(days=days)
    stmt = joined_logs_query().where(
        LogEntry.created_at >= start,
        LogEntry.created_at <= end,
    )
    try:
        return to_summaries(db, stmt)
    except SQLAlchemyError as exc:
        raise StorageError("recent_logs", str(exc)) from exc


def merge_context(
    search_results: list[LogSummary],
    recent_results: list[LogSummary],
) -> list[LogSummary]:
    """Search hits first, then recency results not already among the hits."""
    seen = {r.identity for r in search_results}
    return list(search_results) + [r for r in recent_results if r.identity not in seen]


# ---------------------------------------------------------------------------
# Public: degrade to "no context" on storage failure
# ---------------------------------------------------------------------------

def search_related(
    db: Session,
    query: str,
    token_filter: TokenFilter = minimal_filter,
) -> list[LogSummary]:
    try:
        return search_logs(db, query, token_filter)
    except StorageError as exc:
        logger.warning("Related-log search failed, continuing without context: %s", exc.message)
        db.rollback()
        return []


def fetch_recent(db: Session, days: int) -> list[LogSummary]:
    try:
        return recent_logs(db, days)
    except StorageError as exc:
        logger.warning("Recent-log fetch failed, continuing without context: %s", exc.message)
        db.rollback()
        return []


def classification_context(db: Session, user_text: str) -> ClassificationContext:
    """Related past logs, their memory block and the prompt for a new entry."""
    past = search_related(db, user_text)
    memory_block = format_memory_block(
        past,
        header=CLASSIFICATION_HEADER,
        empty_text=CLASSIFICATION_EMPTY,
        include_metadata=True,
    )
    return ClassificationContext(
        logs=past,
        memory_block=memory_block,
        prompt=build_classification_prompt(memory_block, user_text),
    )


def assemble_chat_context(
    db: Session,
    query: str,
    prior_messages: Optional[list[ChatMessage]] = None,
) -> ChatContext:
    """
    Keyword search (falling back to the raw question when every word is a
    stop word), then a recency window sized by whether search hit:
    CHAT_RECENT_DAYS_WITH_HITS when it did, CHAT_RECENT_DAYS_WITHOUT_HITS otherwise.
    """
    keywords = keyword_filter(query or "")
    # no keyword left: search the raw question
    search_text = " ".join(keywords) if keywords else (query or "")
    hits = search_related(db, search_text, token_filter=minimal_filter)

    days = (
        settings.CHAT_RECENT_DAYS_WITH_HITS if hits
        else settings.CHAT_RECENT_DAYS_WITHOUT_HITS
    )
    recents = fetch_recent(db, days)
    merged = merge_context(hits, recents)

    memory_block = format_memory_block(merged, header=CHAT_HEADER)
    conversation = format_conversation(
        prior_messages or [], limit=settings.CHAT_HISTORY_MESSAGES
    )
    logger.debug(
        "Chat context: %d keyword(s), %d hit(s), %d-day window, %d log(s)",
        len(keywords), len(hits), days, len(merged),
    )
    return ChatContext(
        keywords=keywords,
        search_hits=len(hits),
        recent_days=days,
        logs=merged,
        memory_block=memory_block,
        conversation_block=conversation,
        prompt=build_chat_prompt(memory_block, conversation, query),
    )
