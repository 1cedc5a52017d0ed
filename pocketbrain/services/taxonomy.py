"""
Taxonomy resolver: maps free-text domain / activity names to stable ids.

Rows are created lazily on first use. Creation is a single conflict-free
insert keyed on the table's unique constraint, so two requests racing on a
brand-new name both end up with the same row:

  domains     UNIQUE (name)
  activities  UNIQUE (name, domain_id)

Public API
----------
canonical_domain_name(name)            -> str
domain_color(name)                     -> str
resolve_domain(db, name)               -> int
resolve_activity(db, name, domain_id)  -> int
list_domains(db)                       -> list[Domain]

Neither resolver commits; the caller owns the transaction.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from pocketbrain.core.errors import StorageError
from pocketbrain.models.activity import Activity
from pocketbrain.models.domain import Domain

logger = logging.getLogger(__name__)

DEFAULT_NAME = "General"
DEFAULT_COLOR = "#6B7280"

DOMAIN_COLORS: dict[str, str] = {
    "work": "#3B82F6",
    "health": "#EF4444",
    "finance": "#F59E0B",
    "social": "#10B981",
    "growth": "#8B5CF6",
    "leisure": "#EC4899",
    "general": "#6B7280",
}


# ---------------------------------------------------------------------------
# Name handling
# ---------------------------------------------------------------------------

def canonical_domain_name(name: str) -> str:
    """'  WORK ' -> 'Work'. Blank input falls back to 'General'."""
    trimmed = (name or "").strip()
    if not trimmed:
        return DEFAULT_NAME
    return trimmed[0].upper() + trimmed[1:].lower()


def canonical_activity_name(name: str) -> str:
    trimmed = (name or "").strip()
    return trimmed or DEFAULT_NAME


def domain_color(name: str) -> str:
    return DOMAIN_COLORS.get((name or "").strip().lower(), DEFAULT_COLOR)


# ---------------------------------------------------------------------------
# Conflict-free insert
# ---------------------------------------------------------------------------

def _insert_ignoring_conflict(
    db: Session,
    model: type,
    values: dict[str, Any],
    conflict_columns: list[str],
) -> bool:
    """
    INSERT ... ON CONFLICT DO NOTHING for PostgreSQL and SQLite.
    Other dialects insert inside a savepoint and treat a unique violation
    as "another writer got there first".

    Returns True when this call created the row.
    """
    dialect = db.get_bind().dialect.name

    if dialect == "postgresql":
        stmt = pg_insert(model).values(**values).on_conflict_do_nothing(
            index_elements=conflict_columns
        )
        return db.execute(stmt).rowcount == 1

    if dialect == "sqlite":
        stmt = sqlite_insert(model).values(**values).on_conflict_do_nothing(
            index_elements=conflict_columns
        )
        return db.execute(stmt).rowcount == 1

    savepoint = db.begin_nested()
    try:
        db.execute(insert(model).values(**values))
        savepoint.commit()
    except IntegrityError:
        savepoint.rollback()
        return False
    return True


def _find_domain_id(db: Session, name: str) -> Optional[int]:
    return db.execute(
        select(Domain.id).where(Domain.name == name).limit(1)
    ).scalar_one_or_none()


def _find_activity_id(db: Session, name: str, domain_id: int) -> Optional[int]:
    return db.execute(
        select(Activity.id)
        .where(Activity.name == name, Activity.domain_id == domain_id)
        .limit(1)
    ).scalar_one_or_none()


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def resolve_domain(db: Session, name: str) -> int:
    """Return the id of the domain with this canonical name, creating it if absent."""
    canonical = canonical_domain_name(name)
    try:
        domain_id = _find_domain_id(db, canonical)
        if domain_id is not None:
            return domain_id

        created = _insert_ignoring_conflict(
            db,
            Domain,
            {"name": canonical, "color": domain_color(canonical), "is_active": True},
            ["name"],
        )
        domain_id = _find_domain_id(db, canonical)
    except SQLAlchemyError as exc:
        raise StorageError("resolve_domain", str(exc)) from exc

    if domain_id is None:
        raise StorageError("resolve_domain", f"domain {canonical!r} missing after insert")
    if created:
        logger.info("Created domain %r (id=%s)", canonical, domain_id)
    return domain_id


def resolve_activity(db: Session, name: str, domain_id: int) -> int:
    """Return the id of activity `name` within `domain_id`, creating it if absent."""
    trimmed = canonical_activity_name(name)
    try:
        activity_id = _find_activity_id(db, trimmed, domain_id)
        if activity_id is not None:
            return activity_id

        created = _insert_ignoring_conflict(
            db,
            Activity,
            {"name": trimmed, "domain_id": domain_id, "is_active": True},
            ["name", "domain_id"],
        )
        activity_id = _find_activity_id(db, trimmed, domain_id)
    except SQLAlchemyError as exc:
        raise StorageError("resolve_activity", str(exc)) from exc

    if activity_id is None:
        raise StorageError("resolve_activity", f"activity {trimmed!r} missing after insert")
    if created:
        logger.info("Created activity %r in domain %s (id=%s)", trimmed, domain_id, activity_id)
    return activity_id


def list_domains(db: Session) -> list[Domain]:
    """All domains with their activities, alphabetical."""
    return list(
        db.execute(
            select(Domain).options(selectinload(Domain.activities)).order_by(Domain.name)
        ).scalars()
    )
