"""
Memory (retrieval) router.

GET  /memory/search                 — related past logs for a query
GET  /memory/classification-context — memory block + prompt for a new entry
POST /memory/chat-context           — merged search + recency context for chat

All three degrade to "no context" instead of failing when storage is down.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pocketbrain.db.base import get_db
from pocketbrain.routers.logs import summary_to_out, to_chat_message
from pocketbrain.schemas.memory import (
    ChatContextRequest,
    ChatContextResponse,
    ClassificationContextResponse,
    SearchResponse,
    TokenFilterName,
)
from pocketbrain.services.retrieval import (
    assemble_chat_context,
    classification_context,
    keyword_filter,
    minimal_filter,
    search_related,
)

router = APIRouter(prefix="/memory", tags=["memory"])

_FILTERS = {
    TokenFilterName.minimal: minimal_filter,
    TokenFilterName.keywords: keyword_filter,
}


@router.get("/search", response_model=SearchResponse, summary="Search related past logs")
def search(
    q: str = Query(min_length=1, max_length=10_000, description="Free-text query."),
    filter: TokenFilterName = Query(
        default=TokenFilterName.minimal,
        description="`minimal`: tokens longer than 3 chars. "
                    "`keywords`: stop words removed, tokens longer than 2 chars.",
    ),
    db: Session = Depends(get_db),
):
    """OR-match of the surviving tokens, newest first, at most 5 results."""
    items = search_related(db, q, token_filter=_FILTERS[filter])
    return SearchResponse(query=q, total=len(items), items=[summary_to_out(s) for s in items])


@router.get(
    "/classification-context",
    response_model=ClassificationContextResponse,
    summary="Context block for classifying a new entry",
)
def get_classification_context(
    q: str = Query(min_length=1, max_length=10_000, description="The new entry's text."),
    db: Session = Depends(get_db),
):
    ctx = classification_context(db, q)
    return ClassificationContextResponse(
        memory_block=ctx.memory_block,
        prompt=ctx.prompt,
        total=len(ctx.logs),
        items=[summary_to_out(s) for s in ctx.logs],
    )


@router.post("/chat-context", response_model=ChatContextResponse, summary="Assemble chat context")
def chat_context(payload: ChatContextRequest, db: Session = Depends(get_db)):
    """
    Keyword search first; then a recency window of 2 days when the search
    hit, 3 days when it did not. Search hits are listed before recent logs,
    and a log found by both appears once.
    """
    ctx = assemble_chat_context(
        db,
        payload.query,
        [to_chat_message(m) for m in payload.prior_messages],
    )
    return ChatContextResponse(
        keywords=ctx.keywords,
        search_hits=ctx.search_hits,
        recent_days=ctx.recent_days,
        items=[summary_to_out(s) for s in ctx.logs],
        memory_block=ctx.memory_block,
        conversation_block=ctx.conversation_block,
        prompt=ctx.prompt,
    )
