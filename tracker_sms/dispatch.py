"""
SMS dispatch capability.

The send workflow only depends on the ``Dispatcher`` protocol: an async
``send(phone, command, model_name)`` that always returns a
``DispatchOutcome`` and never raises. ``MockDispatcher`` is the placeholder
used until a carrier gateway is integrated; its random source and latency are
injectable so tests can make it deterministic.
"""

import asyncio
import logging
import random
import string
import time
from typing import Callable, Optional, Protocol

from pydantic import BaseModel, Field

from tracker_sms.config import settings

logger = logging.getLogger(__name__)


NETWORK_ERROR = "NETWORK_ERROR"
UNKNOWN_ERROR = "UNKNOWN_ERROR"

SIMULATED_COST = 0.05


class DispatchOutcome(BaseModel):
    """Definite success/failure result of one dispatch attempt."""
    success: bool
    details: str
    message_id: Optional[str] = Field(None, alias="messageId", serialization_alias="messageId")
    cost: Optional[float] = None
    error_code: Optional[str] = Field(None, alias="errorCode", serialization_alias="errorCode")

    model_config = {"populate_by_name": True}

    @property
    def status(self) -> str:
        return "sent" if self.success else "failed"

    def to_response_data(self) -> dict:
        """Payload stored in sms_history.response_data."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Dispatcher(Protocol):
    async def send(self, phone_number: str, command: str, model_name: str) -> DispatchOutcome:
        ...


class MockDispatcher:
    """
    Simulated carrier: waits ``latency_seconds`` then succeeds with
    probability ``success_rate``.

    Args:
        success_rate: Probability in [0, 1] that a send succeeds
        latency_seconds: Simulated network delay
        rng: Callable returning floats in [0, 1); defaults to random.random
    """

    def __init__(
        self,
        success_rate: float = 0.9,
        latency_seconds: float = 0.1,
        rng: Callable[[], float] = random.random,
    ):
        if not 0.0 <= success_rate <= 1.0:
            raise ValueError("success_rate must be between 0 and 1")
        self.success_rate = success_rate
        self.latency_seconds = latency_seconds
        self._rng = rng

    async def send(self, phone_number: str, command: str, model_name: str) -> DispatchOutcome:
        try:
            if self.latency_seconds > 0:
                await asyncio.sleep(self.latency_seconds)

            if self._rng() < self.success_rate:
                outcome = DispatchOutcome(
                    success=True,
                    details=f'Command "{command}" sent successfully to {model_name} device',
                    message_id=_new_message_id(),
                    cost=SIMULATED_COST,
                )
            else:
                outcome = DispatchOutcome(
                    success=False,
                    details="SMS delivery failed - network error",
                    error_code=NETWORK_ERROR,
                )
        except Exception as e:
            logger.error(f"Dispatch to {phone_number} raised: {e}")
            outcome = DispatchOutcome(success=False, details=str(e), error_code=UNKNOWN_ERROR)

        logger.debug(f"Dispatch to {phone_number}: {outcome.status}")
        return outcome


def _new_message_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"msg_{int(time.time() * 1000)}_{suffix}"


_dispatcher: Optional[Dispatcher] = None


def get_dispatcher() -> Dispatcher:
    """
    FastAPI dependency returning the process-wide dispatcher.
    Override with app.dependency_overrides to inject a different one.
    """
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = MockDispatcher(
            success_rate=settings.DISPATCH_SUCCESS_RATE,
            latency_seconds=settings.DISPATCH_LATENCY_MS / 1000,
        )
    return _dispatcher
