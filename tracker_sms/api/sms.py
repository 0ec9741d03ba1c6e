"""
Send workflow, history listing and statistics routes.
"""

import logging
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from tracker_sms.config import settings
from tracker_sms.dispatch import Dispatcher, get_dispatcher
from tracker_sms.history import HistoryFilters, query_history
from tracker_sms.logging_utils import log_request_data
from tracker_sms.reports import get_stats
from tracker_sms.schemas import (
    HistoryFiltersEcho,
    HistoryResponse,
    SendSmsRequest,
    SendSmsResponse,
    StatsResponse,
)
from tracker_sms.sending import send_command
from tracker_sms.storage import get_db
from tracker_sms.utils import require_api_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sms", tags=["sms"], dependencies=[Depends(require_api_key)])


@router.post(
    "/send",
    response_model=SendSmsResponse,
    response_model_exclude_none=True,
)
async def send_sms(
    request: Request,
    body: SendSmsRequest,
    db: Session = Depends(get_db),
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> SendSmsResponse:
    """
    Send a command to one or more phone numbers.

    - The whole request is rejected (400) if any number is malformed;
      the offending numbers are listed in invalidPhones
    - 404 when modelId does not exist
    - Each number is dispatched and logged independently; per-number
      errors are reported in errors without aborting the batch
    """
    logger.info(f"POST /api/sms/send: {len(body.phone_numbers)} numbers, model={body.model_id}")

    result = await send_command(
        db,
        dispatcher,
        phone_numbers=body.phone_numbers,
        model_id=body.model_id,
        command_text=body.command_text,
        notes=body.notes,
        max_batch=settings.MAX_PHONE_NUMBERS_PER_REQUEST,
    )

    log_request_data(
        request,
        model_id=body.model_id,
        recipients=result.summary.total,
        sent=result.summary.sent,
        failed=result.summary.failed,
    )
    return result


@router.get("/history", response_model=HistoryResponse)
async def sms_history(
    page: Annotated[int, Query(ge=1, description="Page number, starting at 1")] = 1,
    limit: Annotated[int, Query(ge=1, le=500, description="Rows per page")] = 50,
    status: Annotated[Optional[str], Query(description="Exact status: sent, failed or pending")] = None,
    model_id: Annotated[Optional[int], Query(alias="modelId")] = None,
    phone_number: Annotated[Optional[str], Query(alias="phoneNumber", description="Case-insensitive substring")] = None,
    date_from: Annotated[Optional[datetime], Query(alias="dateFrom", description="sent_at >= dateFrom")] = None,
    date_to: Annotated[Optional[datetime], Query(alias="dateTo", description="sent_at <= dateTo")] = None,
    search: Annotated[Optional[str], Query(description="Matches command text, notes or model name")] = None,
    db: Session = Depends(get_db),
) -> HistoryResponse:
    """
    List the send history, newest first, with optional filters.

    Response:
        - data: rows on this page, with model_name and status_icon
        - pagination: page, limit, total, pages, hasNext, hasPrev
        - filters: the filters that were supplied
    """
    filters = HistoryFilters(
        status=status,
        model_id=model_id,
        phone_number=phone_number,
        date_from=date_from,
        date_to=date_to,
        search=search,
    )
    rows, pagination = query_history(db, filters, page=page, limit=limit)

    return HistoryResponse(
        data=rows,
        pagination=pagination,
        filters=HistoryFiltersEcho(
            status=status,
            model_id=model_id,
            phone_number=phone_number,
            date_from=date_from,
            date_to=date_to,
            search=search,
        ),
    )


@router.get("/stats", response_model=StatsResponse)
async def sms_stats(
    period: Annotated[int, Query(ge=1, le=3650, description="Window length in days")] = 30,
    db: Session = Depends(get_db),
) -> StatsResponse:
    """
    Statistics over the last ``period`` days: summary, daily breakdown
    and the top 10 models by usage.
    """
    stats = get_stats(db, period_days=period)
    return StatsResponse(
        period=f"{period} days",
        summary=stats["summary"],
        daily=stats["daily"],
        top_models=stats["top_models"],
    )
