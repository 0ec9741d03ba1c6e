"""
Report export routes.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from tracker_sms.reports import export_csv
from tracker_sms.schemas import PdfReportResponse
from tracker_sms.storage import get_db
from tracker_sms.utils import require_api_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"], dependencies=[Depends(require_api_key)])


@router.get("/csv")
async def report_csv(
    period: Annotated[int, Query(ge=1, le=3650, description="Window length in days")] = 30,
    db: Session = Depends(get_db),
) -> StreamingResponse:
    """Download the history of the last ``period`` days as CSV."""
    content = export_csv(db, period_days=period)
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="sms_report_{period}days.csv"'},
    )


@router.get("/pdf", response_model=PdfReportResponse)
async def report_pdf(period: str = "week") -> PdfReportResponse:
    """Placeholder: PDF rendering is not available yet."""
    logger.info(f"PDF report requested for period={period}; not implemented")
    return PdfReportResponse(
        message="PDF report generation not implemented yet",
        suggestion="Use CSV export for now",
        period=period,
    )
