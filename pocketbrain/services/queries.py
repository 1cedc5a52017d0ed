"""
Read-side log queries: date windows, paging, calendar counts, analytics.

Public API
----------
get_logs_by_date_range(db, start, end)   -> list[LogSummary]
get_logs_by_date(db, day)                -> list[LogSummary]
get_logs_page(db, page, limit)           -> tuple[int, list[LogSummary]]
get_all_logs(db)                         -> list[LogSummary]
get_logs_by_domain(db, name, limit)      -> list[LogSummary]
get_calendar_counts(db, year, month)     -> dict[str, int]
get_analytics_summary(db, days, now)     -> list[DomainActivityStats]

Days are UTC calendar days.
"""
from __future__ import annotations

import calendar
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pocketbrain.models.activity import Activity
from pocketbrain.models.domain import Domain
from pocketbrain.models.log_entry import LogEntry
from pocketbrain.services.retrieval import LogSummary, joined_logs_query, to_summaries
from pocketbrain.services.taxonomy import canonical_domain_name


@dataclass
class DomainActivityStats:
    domain: Optional[str]
    activity: Optional[str]
    avg_mood: float
    avg_energy: float
    avg_productivity: float
    count: int


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = datetime.combine(day, time.max, tzinfo=timezone.utc)
    return start, end


# ---------------------------------------------------------------------------
# Windows
# ---------------------------------------------------------------------------

def get_logs_by_date_range(db: Session, start: datetime, end: datetime) -> list[LogSummary]:
    stmt = joined_logs_query().where(
        LogEntry.created_at >= start,
        LogEntry.created_at <= end,
    )
    return to_summaries(db, stmt)


def get_logs_by_date(db: Session, day: date) -> list[LogSummary]:
    start, end = _day_bounds(day)
    return get_logs_by_date_range(db, start, end)


def get_logs_page(db: Session, page: int = 1, limit: int = 20) -> tuple[int, list[LogSummary]]:
    """Return (total_count, page) ordered by created_at descending."""
    total = db.execute(select(func.count(LogEntry.id))).scalar_one()
    offset = (max(page, 1) - 1) * limit
    items = to_summaries(db, joined_logs_query().offset(offset).limit(limit))
    return total, items


def get_all_logs(db: Session) -> list[LogSummary]:
    return to_summaries(db, joined_logs_query())


def get_logs_by_domain(db: Session, domain_name: str, limit: int = 10) -> list[LogSummary]:
    stmt = (
        joined_logs_query()
        .where(Domain.name == canonical_domain_name(domain_name))
        .limit(limit)
    )
    return to_summaries(db, stmt)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------

def get_calendar_counts(db: Session, year: int, month: int) -> dict[str, int]:
    """{'YYYY-MM-DD': n} for every day of the month that has logs."""
    last_day = calendar.monthrange(year, month)[1]
    start, _ = _day_bounds(date(year, month, 1))
    _, end = _day_bounds(date(year, month, last_day))

    stamps = db.execute(
        select(LogEntry.created_at).where(
            LogEntry.created_at >= start,
            LogEntry.created_at <= end,
        )
    ).scalars()
    counts = Counter(ts.date().isoformat() for ts in stamps)
    return dict(sorted(counts.items()))


def get_analytics_summary(
    db: Session,
    days: int = 7,
    now: Optional[datetime] = None,
) -> list[DomainActivityStats]:
    """Average metrics and counts per (domain, activity) over the last `days`."""
    since = (now or datetime.now(tz=timezone.utc)) - timedelta(days=days)
    rows = db.execute(
        select(
            Domain.name,
            Activity.name,
            func.avg(LogEntry.mood_score),
            func.avg(LogEntry.energy_level),
            func.avg(LogEntry.productivity_score),
            func.count(LogEntry.id),
        )
        .select_from(LogEntry)
        .outerjoin(Domain, LogEntry.domain_id == Domain.id)
        .outerjoin(Activity, LogEntry.activity_id == Activity.id)
        .where(LogEntry.created_at >= since)
        .group_by(Domain.name, Activity.name)
        .order_by(func.count(LogEntry.id).desc(), Domain.name, Activity.name)
    ).all()

    return [
        DomainActivityStats(
            domain=d,
            activity=a,
            avg_mood=round(float(mood), 2),
            avg_energy=round(float(energy), 2),
            avg_productivity=round(float(prod), 2),
            count=int(count),
        )
        for d, a, mood, energy, prod, count in rows
    ]
