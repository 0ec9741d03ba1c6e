"""
Pydantic schemas for request/response validation.

This module contains:
- Request models for incoming data validation
- Response models for API responses

Wire names follow the public JSON API: row fields are snake_case,
request bodies and envelope keys use camelCase aliases.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


def _strip_required(value: str, message: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(message)
    return value


# =============================================================================
# Pydantic Request Models
# =============================================================================

class DeviceModelRequest(BaseModel):
    """Body for creating or updating a device model."""
    name: str = Field(..., max_length=100, description="Unique model name, e.g. TK103")
    description: Optional[str] = Field(None, description="Free-text description")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v, "Model name is required")

    model_config = {
        "json_schema_extra": {
            "examples": [{"name": "TK103", "description": "TK103 GPS tracker - basic model"}]
        }
    }


class CommandCreateRequest(BaseModel):
    """Body for adding a command to a device model."""
    model_id: int = Field(..., alias="modelId", description="Owning device model id")
    command_text: str = Field(..., alias="commandText", max_length=255)
    description: Optional[str] = None

    @field_validator("command_text")
    @classmethod
    def validate_command_text(cls, v: str) -> str:
        return _strip_required(v, "Command text is required")

    model_config = {"populate_by_name": True}


class CommandUpdateRequest(BaseModel):
    """Body for updating a command's text and description."""
    command_text: str = Field(..., alias="commandText", max_length=255)
    description: Optional[str] = None

    @field_validator("command_text")
    @classmethod
    def validate_command_text(cls, v: str) -> str:
        return _strip_required(v, "Command text is required")

    model_config = {"populate_by_name": True}


class SendSmsRequest(BaseModel):
    """
    Body for POST /api/sms/send.

    Phone number syntax is checked by the send workflow so that every
    offending number can be reported at once.
    """
    phone_numbers: list[str] = Field(
        ...,
        alias="phoneNumbers",
        min_length=1,
        description="Recipient phone numbers",
    )
    model_id: int = Field(..., alias="modelId")
    command_text: str = Field(..., alias="commandText", max_length=255)
    notes: Optional[str] = None

    @field_validator("command_text")
    @classmethod
    def validate_command_text(cls, v: str) -> str:
        return _strip_required(v, "Command text is required")

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "phoneNumbers": ["+5511999999999", "+5511888888888"],
                    "modelId": 1,
                    "commandText": "STATUS123456",
                    "notes": "Weekly check",
                }
            ]
        },
    }


class LegacySmsRequest(BaseModel):
    """Body for the legacy POST /api/sms endpoint."""
    phone: str = Field(..., max_length=20)
    message: str
    sender: Optional[str] = Field(None, max_length=100)

    @field_validator("phone", "message")
    @classmethod
    def validate_present(cls, v: str) -> str:
        return _strip_required(v, "Phone and message are required")


# =============================================================================
# Pydantic Response Models
# =============================================================================

class DeviceModelOut(BaseModel):
    """A device model row annotated with its live command count."""
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    command_count: int = 0

    model_config = {"from_attributes": True}


class CommandOut(BaseModel):
    """A command row joined with its model name."""
    id: int
    model_id: int
    command_text: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    model_name: Optional[str] = None

    model_config = {"from_attributes": True}


class DeviceModelListResponse(BaseModel):
    success: bool = True
    data: list[DeviceModelOut] = Field(default_factory=list)
    count: int = Field(..., ge=0)


class DeviceModelResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: DeviceModelOut


class CommandListResponse(BaseModel):
    success: bool = True
    data: list[CommandOut] = Field(default_factory=list)
    count: int = Field(..., ge=0)
    model_id: Optional[int] = Field(None, alias="modelId", serialization_alias="modelId")

    model_config = {"populate_by_name": True}


class CommandResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: CommandOut


class SendSummary(BaseModel):
    total: int = Field(..., ge=0)
    sent: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)


class SendResultItem(BaseModel):
    """Outcome for one phone number that reached the history table."""
    phone: str
    status: str
    id: int
    details: Optional[str] = None


class SendErrorItem(BaseModel):
    """A phone number whose dispatch or persistence raised."""
    phone: str
    error: str


class SendSmsResponse(BaseModel):
    """
    Aggregate result of POST /api/sms/send.

    errors is omitted from the JSON when every number was processed.
    """
    success: bool
    message: str
    summary: SendSummary
    results: list[SendResultItem] = Field(default_factory=list)
    errors: Optional[list[SendErrorItem]] = None


class HistoryRow(BaseModel):
    id: int
    phone_number: str
    model_id: Optional[int] = None
    model_name: Optional[str] = None
    command_text: str
    status: str
    status_icon: str
    sent_at: datetime
    details: Optional[str] = None
    notes: Optional[str] = None
    response_data: Optional[Any] = None


class Pagination(BaseModel):
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    pages: int = Field(..., ge=0)
    has_next: bool = Field(..., alias="hasNext", serialization_alias="hasNext")
    has_prev: bool = Field(..., alias="hasPrev", serialization_alias="hasPrev")

    model_config = {"populate_by_name": True}


class HistoryFiltersEcho(BaseModel):
    """The filters that were applied, echoed back to the caller."""
    status: Optional[str] = None
    model_id: Optional[int] = Field(None, alias="modelId", serialization_alias="modelId")
    phone_number: Optional[str] = Field(None, alias="phoneNumber", serialization_alias="phoneNumber")
    date_from: Optional[datetime] = Field(None, alias="dateFrom", serialization_alias="dateFrom")
    date_to: Optional[datetime] = Field(None, alias="dateTo", serialization_alias="dateTo")
    search: Optional[str] = None

    model_config = {"populate_by_name": True}


class HistoryResponse(BaseModel):
    success: bool = True
    data: list[HistoryRow] = Field(default_factory=list)
    pagination: Pagination
    filters: HistoryFiltersEcho


class DailyStats(BaseModel):
    date: str
    total_messages: int
    sent_count: int
    failed_count: int
    pending_count: int
    unique_numbers: int
    models_used: int


class StatsSummary(BaseModel):
    total_messages: int
    sent_count: int
    failed_count: int
    pending_count: int
    unique_numbers: int
    success_rate: float = Field(..., ge=0, le=100, description="Percentage of rows with status 'sent'")


class TopModel(BaseModel):
    name: str
    usage_count: int
    success_count: int


class StatsResponse(BaseModel):
    """
    Response model for GET /api/sms/stats.

    - period: human readable window, e.g. "30 days"
    - summary: totals over the window
    - daily: per-day breakdown, newest first
    - topModels: up to 10 models by usage
    """
    success: bool = True
    period: str
    summary: StatsSummary
    daily: list[DailyStats] = Field(default_factory=list)
    top_models: list[TopModel] = Field(
        default_factory=list, alias="topModels", serialization_alias="topModels"
    )

    model_config = {"populate_by_name": True}


class PdfReportResponse(BaseModel):
    success: bool = True
    message: str
    suggestion: str
    period: str


class LegacyMessageOut(BaseModel):
    id: int
    phone: str
    message: str
    sender: str
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LegacyMessageResponse(BaseModel):
    success: bool = True
    message: str
    data: LegacyMessageOut


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    timestamp: Optional[str] = None
    uptime: Optional[float] = Field(None, description="Seconds since startup")
    environment: Optional[str] = None
    version: Optional[str] = None
    database: Optional[dict] = None
    memory: Optional[dict] = None
    system: Optional[dict] = None
    error: Optional[str] = None
    details: Optional[str] = None
