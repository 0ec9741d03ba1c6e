"""
SMS history: append-only writes and the filtered, paginated listing.

Filters are turned into an ordered list of tagged predicates. Each predicate
is a SQLAlchemy expression whose user-supplied value travels as a bound
parameter, so nothing the caller sends is ever spliced into SQL text.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from tracker_sms.models import DeviceModel, SmsHistory
from tracker_sms.schemas import HistoryRow, Pagination

logger = logging.getLogger(__name__)


STATUS_ICONS = {
    "sent": "✅",
    "failed": "❌",
    "pending": "⏳",
}
UNKNOWN_STATUS_ICON = "❓"

LIKE_ESCAPE = "\\"


@dataclass(frozen=True)
class HistoryFilters:
    """Optional filters for the history listing; None means not applied."""
    status: Optional[str] = None
    model_id: Optional[int] = None
    phone_number: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None


@dataclass(frozen=True)
class Predicate:
    """One AND-ed condition of the history query, tagged with its filter name."""
    tag: str
    clause: ColumnElement


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _contains_pattern(term: str) -> str:
    """Wrap a user term in % wildcards, escaping LIKE metacharacters in it."""
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def build_predicates(filters: HistoryFilters) -> list[Predicate]:
    """
    Translate the supplied filters into predicates, in a fixed order.
    Filters left as None (or empty strings) contribute nothing.
    """
    predicates: list[Predicate] = []

    if filters.status:
        predicates.append(Predicate("status", SmsHistory.status == filters.status))

    if filters.model_id is not None:
        predicates.append(Predicate("model_id", SmsHistory.model_id == filters.model_id))

    if filters.phone_number:
        pattern = _contains_pattern(filters.phone_number)
        predicates.append(Predicate(
            "phone_number",
            SmsHistory.phone_number.ilike(pattern, escape=LIKE_ESCAPE),
        ))

    if filters.date_from is not None:
        predicates.append(Predicate("date_from", SmsHistory.sent_at >= _as_naive_utc(filters.date_from)))

    if filters.date_to is not None:
        predicates.append(Predicate("date_to", SmsHistory.sent_at <= _as_naive_utc(filters.date_to)))

    if filters.search:
        pattern = _contains_pattern(filters.search)
        predicates.append(Predicate(
            "search",
            or_(
                SmsHistory.command_text.ilike(pattern, escape=LIKE_ESCAPE),
                SmsHistory.notes.ilike(pattern, escape=LIKE_ESCAPE),
                DeviceModel.name.ilike(pattern, escape=LIKE_ESCAPE),
            ),
        ))

    return predicates


def status_icon(status: str) -> str:
    return STATUS_ICONS.get(status, UNKNOWN_STATUS_ICON)


def _history_row(entry: SmsHistory, model_name: Optional[str]) -> HistoryRow:
    return HistoryRow(
        id=entry.id,
        phone_number=entry.phone_number,
        model_id=entry.model_id,
        model_name=model_name,
        command_text=entry.command_text,
        status=entry.status,
        status_icon=status_icon(entry.status),
        sent_at=entry.sent_at,
        details=entry.details,
        notes=entry.notes,
        response_data=entry.response_data,
    )


def query_history(
    db: Session,
    filters: HistoryFilters,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[HistoryRow], Pagination]:
    """
    Retrieve one page of history rows, newest first.

    The total is computed by a separate count over the same predicates,
    without pagination.

    Returns:
        Tuple of (rows on this page, pagination metadata)
    """
    predicates = build_predicates(filters)
    clauses = [p.clause for p in predicates]
    logger.debug(f"History filters applied: {[p.tag for p in predicates]}")

    total = (
        db.query(func.count(SmsHistory.id))
        .select_from(SmsHistory)
        .outerjoin(DeviceModel, SmsHistory.model_id == DeviceModel.id)
        .filter(*clauses)
        .scalar()
    ) or 0

    rows = (
        db.query(SmsHistory, DeviceModel.name)
        .outerjoin(DeviceModel, SmsHistory.model_id == DeviceModel.id)
        .filter(*clauses)
        .order_by(SmsHistory.sent_at.desc(), SmsHistory.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    logger.info(f"History query returned {len(rows)} of {total} rows (page={page}, limit={limit})")

    pagination = Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit),
        has_next=page * limit < total,
        has_prev=page > 1,
    )
    return [_history_row(entry, model_name) for entry, model_name in rows], pagination


def record_history(
    db: Session,
    phone_number: str,
    model_id: int,
    command_text: str,
    status: str,
    details: Optional[str] = None,
    notes: Optional[str] = None,
    response_data: Optional[Any] = None,
) -> SmsHistory:
    """Append one row to sms_history and commit it."""
    entry = SmsHistory(
        phone_number=phone_number,
        model_id=model_id,
        command_text=command_text,
        status=status,
        details=details,
        notes=notes or None,
        response_data=response_data,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    logger.debug(f"History row {entry.id} recorded for {phone_number}: {status}")
    return entry
