"""
Retrieval request / response schemas.

GET  /memory/search                  → SearchResponse
GET  /memory/classification-context  → ClassificationContextResponse
POST /memory/chat-context            → ChatContextRequest → ChatContextResponse
"""
from __future__ import annotations

import enum
from typing import Annotated

from pydantic import BaseModel, Field

from pocketbrain.schemas.logs import ChatMessageIn, LogOut


class TokenFilterName(str, enum.Enum):
    minimal = "minimal"
    keywords = "keywords"


class SearchResponse(BaseModel):
    query: str
    total: int
    items: list[LogOut]


class ClassificationContextResponse(BaseModel):
    memory_block: str
    prompt: str = Field(description="Full classification prompt for the generator.")
    total: int
    items: list[LogOut]


class ChatContextRequest(BaseModel):
    query: Annotated[str, Field(min_length=1, max_length=10_000)]
    prior_messages: list[ChatMessageIn] = Field(
        default_factory=list,
        description="Conversation so far, oldest first. Only the last few are used.",
    )


class ChatContextResponse(BaseModel):
    keywords: list[str]
    search_hits: int = Field(description="Logs matched by keyword search (listed first).")
    recent_days: int = Field(description="Recency window applied after the search.")
    items: list[LogOut]
    memory_block: str
    conversation_block: str
    prompt: str
