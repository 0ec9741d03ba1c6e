"""
Backward-compatible /api/sms routes.

GET is the current history listing under its old path; POST writes to the
separate legacy sms_messages table and never touches sms_history.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from tracker_sms.api.sms import sms_history
from tracker_sms.repository import create_legacy_message
from tracker_sms.schemas import HistoryResponse, LegacyMessageOut, LegacyMessageResponse, LegacySmsRequest
from tracker_sms.storage import get_db
from tracker_sms.utils import require_api_key

router = APIRouter(prefix="/api", tags=["legacy"], dependencies=[Depends(require_api_key)])

router.add_api_route("/sms", sms_history, methods=["GET"], response_model=HistoryResponse)


@router.post("/sms", response_model=LegacyMessageResponse, status_code=status.HTTP_201_CREATED)
async def create_sms(body: LegacySmsRequest, db: Session = Depends(get_db)) -> LegacyMessageResponse:
    row = create_legacy_message(db, body.phone, body.message, body.sender)
    return LegacyMessageResponse(
        message="SMS sent successfully",
        data=LegacyMessageOut.model_validate(row),
    )
