"""
Text blocks handed to the generator: memory blocks, chat history, prompts.

Pure string building. Nothing here touches the database.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from pocketbrain.services.retrieval import LogSummary

CLASSIFICATION_HEADER = "RELEVANT PAST LOGS:"
CLASSIFICATION_EMPTY = "No relevant past logs found."
CHAT_HEADER = "RELEVANT LOGS FROM DATABASE:"


@dataclass
class ChatMessage:
    role: str  # "user" | "assistant"
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))


def _format_date(value: Optional[datetime]) -> str:
    return value.date().isoformat() if value else ""


def format_log_line(log: "LogSummary", include_metadata: bool = False) -> str:
    """'- Domain: Work, Activity: Coding, Description: …, Mood: 8/10, …, Date: 2026-10-18'"""
    parts = [
        f"Domain: {log.domain}" if log.domain else "",
        f"Activity: {log.activity}" if log.activity else "",
        f"Description: {log.description}",
        f"Mood: {log.mood_score}/10" if log.mood_score else "",
        f"Energy: {log.energy_level}/10" if log.energy_level else "",
        f"Productivity: {log.productivity_score}/10" if log.productivity_score else "",
        f"Metadata: {json.dumps(log.metadata, ensure_ascii=False)}"
        if include_metadata and log.metadata else "",
        f"Date: {_format_date(log.date)}" if log.date else "",
    ]
    return "- " + ", ".join(p for p in parts if p)


def format_memory_block(
    logs: Iterable["LogSummary"],
    header: str = CHAT_HEADER,
    empty_text: str = "",
    include_metadata: bool = False,
) -> str:
    lines = [format_log_line(log, include_metadata) for log in logs]
    if not lines:
        return empty_text
    return header + "\n" + "\n".join(lines)


def format_conversation(messages: Iterable[ChatMessage], limit: int = 4) -> str:
    """Last `limit` messages as 'User: …' / 'Assistant: …' lines."""
    recent = list(messages)[-limit:] if limit > 0 else []
    return "\n".join(
        f"{'User' if m.role == 'user' else 'Assistant'}: {m.content}" for m in recent
    )


def build_classification_prompt(memory_block: str, user_text: str) -> str:
    return f"""CONTEXT FROM DATABASE:
{memory_block}

USER INPUT: "{user_text}"

TASK: Analyze the user input and create a structured log entry.

Return ONLY a raw JSON object with this structure:
{{
    "log": {{"description": "concise summary", "user_input": "the original text, verbatim"}},
    "classification": {{
        "domain": "one of Work, Health, Finance, Social, Growth, Leisure, General",
        "activity": "specific activity within the domain, e.g. Coding, Sleep, SIP, Friends"
    }},
    "metadata": {{}},
    "action": {{"action": "acknowledge | question | insight | reminder", "priority": "low | medium | high"}},
    "context": {{"relevant_context": "how the database context relates, or None"}},
    "moodScore": 1-10,
    "energyLevel": 1-10,
    "productivityScore": 1-10,
    "location": "optional",
    "timeOfDay": "optional: morning | afternoon | evening | night",
    "durationMinutes": "optional number",
    "amount": "optional number, financial entries only",
    "currency": "optional, only with amount",
    "sentiment": "optional: positive | negative | neutral"
}}

Put activity-specific details (exercise, weight, ticker, person, ...) in "metadata".
Do not wrap the JSON in Markdown code fences."""


def build_chat_prompt(context_block: str, conversation_block: str, question: str) -> str:
    sections = ["You are a helpful AI assistant with access to the user's personal log database."]
    if context_block:
        sections.append(context_block)
    if conversation_block:
        sections.append(f"RECENT CONVERSATION:\n{conversation_block}")
    sections.append(f'User Question: "{question}"')
    sections.append(
        "Answer the user's question using the context from their logs when relevant. "
        "Be conversational, helpful, and insightful. If the context doesn't fully answer "
        "the question, you can still provide a helpful response based on general knowledge."
    )
    return "\n\n".join(sections)
