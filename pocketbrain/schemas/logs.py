"""
Log request / response schemas.

POST /logs          → arbitrary JSON object → SaveLogResponse
POST /logs/chat     → SaveChatRequest       → SaveLogResponse
GET  /logs*         → LogOut / LogListResponse
"""
from __future__ import annotations

import enum
from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ChatRole(str, enum.Enum):
    user = "user"
    assistant = "assistant"


class SaveLogResponse(BaseModel):
    """Outcome of a save. Failures are reported through the error envelope."""
    success: bool
    log_id: Optional[int] = Field(default=None, description="ID in the logs table.")
    domain_id: Optional[int] = Field(default=None, description="Resolved domain id.")
    activity_id: Optional[int] = Field(default=None, description="Resolved activity id.")


class ChatMessageIn(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    role: ChatRole
    content: Annotated[str, Field(min_length=1, max_length=20_000)]
    timestamp: Optional[datetime] = Field(
        default=None, description="When the message was sent. Defaults to now (UTC)."
    )

    @field_validator("content", mode="before")
    @classmethod
    def strip_and_check_empty(cls, v: str) -> str:
        stripped = v.strip() if isinstance(v, str) else v
        if not stripped:
            raise ValueError("content must not be empty after stripping whitespace")
        return stripped


class SaveChatRequest(BaseModel):
    """One chat turn plus the messages that preceded it."""
    message: ChatMessageIn
    conversation_context: list[ChatMessageIn] = Field(
        default_factory=list,
        description="Recent messages stored alongside the turn (contents cut to 200 chars).",
    )


class LogOut(BaseModel):
    """A stored log joined with its domain / activity names."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int]
    date: Optional[str] = Field(default=None, description="UTC creation timestamp.")
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
    amount: Optional[str] = None
    currency: Optional[str] = None
    sentiment: Optional[str] = None
    priority: Optional[str] = None


class LogListResponse(BaseModel):
    total: int
    items: list[LogOut]


class LogPageResponse(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    items: list[LogOut]


class CalendarResponse(BaseModel):
    year: int
    month: int
    days: dict[str, int] = Field(description="ISO date → number of logs that day.")
