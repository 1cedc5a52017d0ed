"""
Logs router.

POST /logs                 — save a classifier payload
POST /logs/chat            — save one chat turn
GET  /logs                 — paginated list, newest first
GET  /logs/recent          — logs from the last N days
GET  /logs/range           — logs between two timestamps
GET  /logs/day/{day}       — logs for one UTC day
GET  /logs/calendar        — per-day counts for a month
GET  /logs/domain/{name}   — latest logs of one domain
"""
from __future__ import annotations

import math
from datetime import date, datetime, timezone
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from pocketbrain.db.base import get_db
from pocketbrain.core.errors import InvalidDateRangeError, InvalidPayloadError, LogSaveError
from pocketbrain.schemas.common import ErrorResponse
from pocketbrain.schemas.logs import (
    CalendarResponse,
    ChatMessageIn,
    LogListResponse,
    LogOut,
    LogPageResponse,
    SaveChatRequest,
    SaveLogResponse,
)
from pocketbrain.services.logs import SaveLogResult, save_chat_message, save_classified_log
from pocketbrain.services.prompts import ChatMessage
from pocketbrain.services.queries import (
    get_calendar_counts,
    get_logs_by_date,
    get_logs_by_date_range,
    get_logs_by_domain,
    get_logs_page,
)
from pocketbrain.services.retrieval import LogSummary, fetch_recent

router = APIRouter(prefix="/logs", tags=["logs"])


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def summary_to_out(s: LogSummary) -> LogOut:
    return LogOut(
        id=s.id,
        date=s.date.isoformat() if s.date else None,
        content=s.content,
        description=s.description,
        user_input=s.user_input,
        domain=s.domain,
        activity=s.activity,
        mood_score=s.mood_score,
        energy_level=s.energy_level,
        productivity_score=s.productivity_score,
        stress_level=s.stress_level,
        satisfaction_score=s.satisfaction_score,
        metadata=s.metadata,
        location=s.location,
        time_of_day=s.time_of_day,
        duration_minutes=s.duration_minutes,
        amount=str(s.amount) if s.amount is not None else None,
        currency=s.currency,
        sentiment=s.sentiment,
        priority=s.priority,
    )


def to_chat_message(m: ChatMessageIn) -> ChatMessage:
    if m.timestamp is None:
        return ChatMessage(role=m.role, content=m.content)
    return ChatMessage(role=m.role, content=m.content, timestamp=m.timestamp)


def _result_to_response(result: SaveLogResult) -> SaveLogResponse:
    if not result.success:
        raise LogSaveError(error=result.error or "unknown error")
    return SaveLogResponse(
        success=True,
        log_id=result.log_id,
        domain_id=result.domain_id,
        activity_id=result.activity_id,
    )


def _list(items: list[LogSummary]) -> LogListResponse:
    return LogListResponse(total=len(items), items=[summary_to_out(s) for s in items])


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=SaveLogResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a classified log entry",
    responses={
        422: {"model": ErrorResponse, "description": "Body is not a JSON object"},
        500: {"model": ErrorResponse, "description": "Storage rejected the log (code LOG_SAVE_FAILED)"},
    },
)
def save_log(payload: Any = Body(...), db: Session = Depends(get_db)):
    """
    Accept the classifier's JSON output as-is. Every field is validated on
    its own: invalid values become null or a default, they never reject
    the request. Missing scores are inferred from the description.
    """
    if not isinstance(payload, dict):
        raise InvalidPayloadError(received=type(payload).__name__)
    return _result_to_response(save_classified_log(db, payload))


@router.post(
    "/chat",
    response_model=SaveLogResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save a chat message as a log entry",
    responses={
        422: {"model": ErrorResponse, "description": "Invalid chat message"},
        500: {"model": ErrorResponse, "description": "Storage rejected the log (code LOG_SAVE_FAILED)"},
    },
)
def save_chat(payload: SaveChatRequest, db: Session = Depends(get_db)):
    """Stored under General / Chat with neutral scores and priority `low`."""
    result = save_chat_message(
        db,
        to_chat_message(payload.message),
        [to_chat_message(m) for m in payload.conversation_context],
    )
    return _result_to_response(result)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

@router.get("", response_model=LogPageResponse, summary="List logs (paginated, newest first)")
def list_logs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    total, items = get_logs_page(db, page=page, limit=limit)
    return LogPageResponse(
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
        items=[summary_to_out(s) for s in items],
    )


@router.get("/recent", response_model=LogListResponse, summary="Logs from the last N days")
def recent(
    days: int = Query(default=7, ge=0, le=3650),
    db: Session = Depends(get_db),
):
    """Degrades to an empty list if the database cannot be read."""
    return _list(fetch_recent(db, days))


@router.get(
    "/range",
    response_model=LogListResponse,
    summary="Logs between two timestamps",
    responses={422: {"model": ErrorResponse, "description": "start is after end (code INVALID_DATE_RANGE)"}},
)
def by_range(
    start: datetime = Query(description="Inclusive lower bound (naive = UTC)."),
    end: datetime = Query(description="Inclusive upper bound (naive = UTC)."),
    db: Session = Depends(get_db),
):
    start = start if start.tzinfo else start.replace(tzinfo=timezone.utc)
    end = end if end.tzinfo else end.replace(tzinfo=timezone.utc)
    if start > end:
        raise InvalidDateRangeError(start=start.date(), end=end.date())
    return _list(get_logs_by_date_range(db, start, end))


@router.get("/day/{day}", response_model=LogListResponse, summary="Logs for one UTC day")
def by_day(day: date, db: Session = Depends(get_db)):
    return _list(get_logs_by_date(db, day))


@router.get("/calendar", response_model=CalendarResponse, summary="Per-day log counts for a month")
def calendar_counts(
    year: int = Query(ge=1970, le=9999),
    month: int = Query(ge=1, le=12),
    db: Session = Depends(get_db),
):
    return CalendarResponse(year=year, month=month, days=get_calendar_counts(db, year, month))


@router.get("/domain/{name}", response_model=LogListResponse, summary="Latest logs of a domain")
def by_domain(
    name: str,
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """`name` is canonicalized the same way as on write (`work` → `Work`)."""
    return _list(get_logs_by_domain(db, name, limit=limit))
