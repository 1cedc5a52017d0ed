"""
LogEntry — one classified life event or chat message.

Append-only: rows are inserted once and never updated by the service layer.

Dict / list columns (metadata, related_log_ids) are JSON-encoded
Text, the same convention the rest of the schema uses.

enum-like text columns:
  time_of_day  "morning" | "afternoon" | "evening" | "night" | NULL
  sentiment    "positive" | "negative" | "neutral" | NULL
  priority     free text, "medium" when the classifier gives none
"""
from datetime import datetime
from decimal import Decimal
from sqlalchemy import Integer, String, Text, Numeric, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from pocketbrain.db.base import Base


class LogEntry(Base):
    __tablename__ = "logs"
    __table_args__ = (
        Index("logs_domain_activity_created_idx", "domain_id", "activity_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    # Core content
    content: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    user_input: Mapped[str] = mapped_column(Text, nullable=False)

    # Taxonomy
    domain_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("domains.id"), nullable=True, index=True
    )
    activity_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("activities.id"), nullable=True, index=True
    )

    # Universal metrics, 1–10
    mood_score: Mapped[int] = mapped_column(Integer, nullable=False, default=5, index=True)
    energy_level: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    productivity_score: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    stress_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    satisfaction_score: Mapped[int | None] = mapped_column(Integer, nullable=True)

    log_metadata: Mapped[str | None] = mapped_column(
        "metadata", Text, nullable=True,
        comment="JSON-encoded activity-specific dict plus aiAction / aiPriority / aiContext",
    )

    # Context & relationships
    related_log_ids: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="JSON array of log ids"
    )
    goal_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    location: Mapped[str | None] = mapped_column(String(256), nullable=True)
    time_of_day: Mapped[str | None] = mapped_column(String(16), nullable=True)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(8), nullable=True)

    priority: Mapped[str | None] = mapped_column(String(16), nullable=True)
    sentiment: Mapped[str | None] = mapped_column(String(16), nullable=True)
    ai_action: Mapped[str | None] = mapped_column(String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
