"""
Device model and command CRUD routes.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from tracker_sms import repository
from tracker_sms.schemas import (
    CommandCreateRequest,
    CommandListResponse,
    CommandResponse,
    CommandUpdateRequest,
    DeviceModelListResponse,
    DeviceModelRequest,
    DeviceModelResponse,
)
from tracker_sms.storage import get_db
from tracker_sms.utils import require_api_key

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"], dependencies=[Depends(require_api_key)])


# =============================================================================
# Device Models
# =============================================================================

@router.get("/models", response_model=DeviceModelListResponse)
async def list_models(db: Session = Depends(get_db)) -> DeviceModelListResponse:
    """List device models ordered by name, each with its command_count."""
    models = repository.list_models(db)
    return DeviceModelListResponse(data=models, count=len(models))


@router.get("/models/{model_id}", response_model=DeviceModelResponse)
async def get_model(model_id: int, db: Session = Depends(get_db)) -> DeviceModelResponse:
    return DeviceModelResponse(data=repository.get_model(db, model_id))


@router.post("/models", response_model=DeviceModelResponse, status_code=status.HTTP_201_CREATED)
async def create_model(body: DeviceModelRequest, db: Session = Depends(get_db)) -> DeviceModelResponse:
    """
    Add a device model.

    - 400 when the name is missing or blank
    - 409 when the name is already taken
    """
    model = repository.create_model(db, body.name, body.description)
    return DeviceModelResponse(message="Model added successfully", data=model)


@router.put("/models/{model_id}", response_model=DeviceModelResponse)
async def update_model(
    model_id: int,
    body: DeviceModelRequest,
    db: Session = Depends(get_db),
) -> DeviceModelResponse:
    model = repository.update_model(db, model_id, body.name, body.description)
    return DeviceModelResponse(message="Model updated successfully", data=model)


@router.delete("/models/{model_id}", response_model=DeviceModelResponse)
async def delete_model(model_id: int, db: Session = Depends(get_db)) -> DeviceModelResponse:
    """
    Delete a device model.

    Refused with 409 while the model still has commands; they must be
    deleted first.
    """
    model = repository.delete_model(db, model_id)
    return DeviceModelResponse(message="Model deleted successfully", data=model)


@router.get("/models/{model_id}/commands", response_model=CommandListResponse)
async def list_model_commands(model_id: int, db: Session = Depends(get_db)) -> CommandListResponse:
    commands = repository.list_commands(db, model_id=model_id)
    return CommandListResponse(data=commands, count=len(commands), model_id=model_id)


# =============================================================================
# Commands
# =============================================================================

@router.get("/commands", response_model=CommandListResponse)
async def list_commands(db: Session = Depends(get_db)) -> CommandListResponse:
    commands = repository.list_commands(db)
    return CommandListResponse(data=commands, count=len(commands))


@router.get("/commands/{command_id}", response_model=CommandResponse)
async def get_command(command_id: int, db: Session = Depends(get_db)) -> CommandResponse:
    return CommandResponse(data=repository.get_command(db, command_id))


@router.post("/commands", response_model=CommandResponse, status_code=status.HTTP_201_CREATED)
async def create_command(body: CommandCreateRequest, db: Session = Depends(get_db)) -> CommandResponse:
    """
    Add a command to a model.

    - 404 when modelId does not exist
    - 409 when the model already has this command text
    """
    command = repository.create_command(db, body.model_id, body.command_text, body.description)
    return CommandResponse(message="Command added successfully", data=command)


@router.put("/commands/{command_id}", response_model=CommandResponse)
async def update_command(
    command_id: int,
    body: CommandUpdateRequest,
    db: Session = Depends(get_db),
) -> CommandResponse:
    command = repository.update_command(db, command_id, body.command_text, body.description)
    return CommandResponse(message="Command updated successfully", data=command)


@router.delete("/commands/{command_id}", response_model=CommandResponse)
async def delete_command(command_id: int, db: Session = Depends(get_db)) -> CommandResponse:
    command = repository.delete_command(db, command_id)
    return CommandResponse(message="Command deleted successfully", data=command)
