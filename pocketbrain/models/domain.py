"""
Domain — top-level life area (Work, Health, Finance …).

`name` holds the canonical form produced by the taxonomy resolver and is the
uniqueness key; the resolver's conflict-free insert relies on it.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pocketbrain.db.base import Base


class Domain(Base):
    __tablename__ = "domains"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    color: Mapped[str | None] = mapped_column(String(16), nullable=True, comment="Hex color for UI")
    icon: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    activities: Mapped[list["Activity"]] = relationship(  # noqa: F821
        back_populates="domain", order_by="Activity.name"
    )
