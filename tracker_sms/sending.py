"""
The send workflow: validate a batch of phone numbers, dispatch the command to
each one and record every attempt in sms_history.

Validation is all-or-nothing. Only ASCII digits count as digits. Once the batch is accepted, numbers are
processed one after another and a failure on one number is reported without
aborting the rest.
"""

import logging
import re
from typing import Optional

from sqlalchemy.orm import Session

from tracker_sms.dispatch import Dispatcher
from tracker_sms.errors import NotFoundError, ValidationError
from tracker_sms.history import record_history
from tracker_sms.metrics import record_sms_outcome
from tracker_sms.models import DeviceModel
from tracker_sms.schemas import SendErrorItem, SendResultItem, SendSmsResponse, SendSummary

logger = logging.getLogger(__name__)


# ASCII digits, "+", "-", parentheses and spaces; 10 to 20 characters
PHONE_PATTERN = re.compile(r"^[\d+\-()\s]{10,20}$", re.ASCII)


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_PATTERN.match(phone.strip()))


def find_invalid_phones(phone_numbers: list[str]) -> list[str]:
    """Return the numbers that fail the pattern, as the caller sent them."""
    return [phone for phone in phone_numbers if not is_valid_phone(phone)]


def validate_batch(phone_numbers: list[str], max_batch: int) -> None:
    """
    Raises:
        ValidationError: the batch is empty, too large, or holds malformed numbers
    """
    if not phone_numbers:
        raise ValidationError("Phone numbers array is required")

    if len(phone_numbers) > max_batch:
        raise ValidationError(
            "Too many phone numbers",
            message=f"A single request may target at most {max_batch} phone numbers",
        )

    invalid = find_invalid_phones(phone_numbers)
    if invalid:
        logger.info(f"Rejected send request with {len(invalid)} invalid phone numbers")
        raise ValidationError("Invalid phone numbers detected", invalidPhones=invalid)


async def send_command(
    db: Session,
    dispatcher: Dispatcher,
    phone_numbers: list[str],
    model_id: int,
    command_text: str,
    notes: Optional[str] = None,
    max_batch: int = 100,
) -> SendSmsResponse:
    """
    Dispatch ``command_text`` to every number and log each attempt.

    Raises:
        ValidationError: see validate_batch
        NotFoundError: model_id does not resolve
    """
    validate_batch(phone_numbers, max_batch)

    model = db.get(DeviceModel, model_id)
    if model is None:
        raise NotFoundError("Model not found")
    model_name = model.name
    command_text = command_text.strip()

    results: list[SendResultItem] = []
    errors: list[SendErrorItem] = []

    for raw_phone in phone_numbers:
        phone = raw_phone.strip()
        try:
            outcome = await dispatcher.send(phone, command_text, model_name)
            entry = record_history(
                db,
                phone_number=phone,
                model_id=model_id,
                command_text=command_text,
                status=outcome.status,
                details=outcome.details,
                notes=notes,
                response_data=outcome.to_response_data(),
            )
        except Exception as e:
            db.rollback()
            logger.exception(f"Error sending SMS to {phone}")
            record_sms_outcome("error")
            errors.append(SendErrorItem(phone=phone, error=str(e)))
            continue

        record_sms_outcome(outcome.status)
        results.append(SendResultItem(
            phone=phone,
            status=outcome.status,
            id=entry.id,
            details=outcome.details,
        ))

    sent = sum(1 for r in results if r.status == "sent")
    failed = sum(1 for r in results if r.status == "failed") + len(errors)
    logger.info(f"SMS batch for model {model_name}: sent={sent}, failed={failed}")

    return SendSmsResponse(
        success=sent > 0,
        message=f"SMS processing completed. Sent: {sent}, Failed: {failed}",
        summary=SendSummary(total=len(phone_numbers), sent=sent, failed=failed),
        results=results,
        errors=errors or None,
    )
