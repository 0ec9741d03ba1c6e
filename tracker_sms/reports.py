"""
Aggregate statistics and CSV export over sms_history.

Both work on a trailing window of ``period_days`` ending now.
"""

import csv
import io
import logging
from datetime import datetime, timedelta

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from tracker_sms.models import DeviceModel, SmsHistory, utcnow

logger = logging.getLogger(__name__)


TOP_MODELS_LIMIT = 10

CSV_HEADERS = ["Phone Number", "Model", "Command", "Status", "Sent At", "Notes", "Details"]


def window_start(period_days: int) -> datetime:
    return utcnow() - timedelta(days=period_days)


def _status_count(status: str):
    return func.count(case((SmsHistory.status == status, 1)))


def get_stats(db: Session, period_days: int = 30) -> dict:
    """
    Compute send statistics for the last ``period_days`` days.

    Computes:
    - summary: totals, unique numbers and success rate (percent, 2 decimals)
    - daily: per-day breakdown, newest day first
    - top_models: the 10 most used models with their success counts

    Returns:
        Dictionary with stats data
    """
    since = window_start(period_days)
    logger.info(f"Computing SMS statistics for the last {period_days} days")

    day = func.date(SmsHistory.sent_at)
    daily_rows = (
        db.query(
            day.label("date"),
            func.count(SmsHistory.id).label("total_messages"),
            _status_count("sent").label("sent_count"),
            _status_count("failed").label("failed_count"),
            _status_count("pending").label("pending_count"),
            func.count(func.distinct(SmsHistory.phone_number)).label("unique_numbers"),
            func.count(func.distinct(SmsHistory.model_id)).label("models_used"),
        )
        .filter(SmsHistory.sent_at >= since)
        .group_by(day)
        .order_by(day.desc())
        .all()
    )
    daily = [
        {
            "date": str(row.date),
            "total_messages": row.total_messages,
            "sent_count": row.sent_count,
            "failed_count": row.failed_count,
            "pending_count": row.pending_count,
            "unique_numbers": row.unique_numbers,
            "models_used": row.models_used,
        }
        for row in daily_rows
    ]

    totals = (
        db.query(
            func.count(SmsHistory.id).label("total_messages"),
            _status_count("sent").label("sent_count"),
            _status_count("failed").label("failed_count"),
            _status_count("pending").label("pending_count"),
            func.count(func.distinct(SmsHistory.phone_number)).label("unique_numbers"),
        )
        .filter(SmsHistory.sent_at >= since)
        .one()
    )
    total_messages = totals.total_messages or 0
    sent_count = totals.sent_count or 0
    success_rate = round(sent_count * 100.0 / total_messages, 2) if total_messages else 0.0

    top_rows = (
        db.query(
            DeviceModel.name,
            func.count(SmsHistory.id).label("usage_count"),
            _status_count("sent").label("success_count"),
        )
        .join(DeviceModel, SmsHistory.model_id == DeviceModel.id)
        .filter(SmsHistory.sent_at >= since)
        .group_by(DeviceModel.id, DeviceModel.name)
        .order_by(func.count(SmsHistory.id).desc(), DeviceModel.name)
        .limit(TOP_MODELS_LIMIT)
        .all()
    )
    top_models = [
        {"name": row.name, "usage_count": row.usage_count, "success_count": row.success_count}
        for row in top_rows
    ]

    logger.debug(f"Stats computed: {total_messages} messages over {len(daily)} days")

    return {
        "summary": {
            "total_messages": total_messages,
            "sent_count": sent_count,
            "failed_count": totals.failed_count or 0,
            "pending_count": totals.pending_count or 0,
            "unique_numbers": totals.unique_numbers or 0,
            "success_rate": success_rate,
        },
        "daily": daily,
        "top_models": top_models,
    }


def export_csv(db: Session, period_days: int = 30) -> str:
    """
    Serialize the history rows of the window as CSV, newest first.
    Every field is quoted; missing model names, notes and details are empty.
    """
    rows = (
        db.query(
            SmsHistory.phone_number,
            DeviceModel.name.label("model_name"),
            SmsHistory.command_text,
            SmsHistory.status,
            SmsHistory.sent_at,
            SmsHistory.notes,
            SmsHistory.details,
        )
        .outerjoin(DeviceModel, SmsHistory.model_id == DeviceModel.id)
        .filter(SmsHistory.sent_at >= window_start(period_days))
        .order_by(SmsHistory.sent_at.desc(), SmsHistory.id.desc())
        .all()
    )

    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow([
            row.phone_number,
            row.model_name or "",
            row.command_text,
            row.status,
            row.sent_at.isoformat() if row.sent_at else "",
            row.notes or "",
            row.details or "",
        ])

    logger.info(f"CSV export built with {len(rows)} rows for the last {period_days} days")
    return output.getvalue()
