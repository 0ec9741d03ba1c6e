"""
Repository functions for device models, commands and the legacy message log.

Uniqueness violations surface from the store as IntegrityError and are
translated into ConflictError here; missing rows raise NotFoundError.
"""

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tracker_sms.errors import ConflictError, NotFoundError
from tracker_sms.models import Command, DeviceModel, SmsMessage
from tracker_sms.schemas import CommandOut, DeviceModelOut

logger = logging.getLogger(__name__)


# =============================================================================
# Device Models
# =============================================================================

def _model_out(model: DeviceModel, command_count: int = 0) -> DeviceModelOut:
    return DeviceModelOut(
        id=model.id,
        name=model.name,
        description=model.description,
        created_at=model.created_at,
        updated_at=model.updated_at,
        command_count=command_count or 0,
    )


def _count_commands(db: Session, model_id: int) -> int:
    return db.query(func.count(Command.id)).filter(Command.model_id == model_id).scalar() or 0


def _get_model_or_404(db: Session, model_id: int) -> DeviceModel:
    model = db.get(DeviceModel, model_id)
    if model is None:
        raise NotFoundError("Model not found")
    return model


def list_models(db: Session) -> list[DeviceModelOut]:
    """
    Return every device model ordered by name, each annotated with the
    number of commands that reference it.
    """
    rows = (
        db.query(DeviceModel, func.count(Command.id).label("command_count"))
        .outerjoin(Command, Command.model_id == DeviceModel.id)
        .group_by(DeviceModel.id)
        .order_by(DeviceModel.name)
        .all()
    )
    logger.debug(f"Fetched {len(rows)} device models")
    return [_model_out(model, count) for model, count in rows]


def get_model(db: Session, model_id: int) -> DeviceModelOut:
    model = _get_model_or_404(db, model_id)
    return _model_out(model, _count_commands(db, model_id))


def create_model(db: Session, name: str, description: Optional[str] = None) -> DeviceModelOut:
    """
    Create a device model.

    Raises:
        ConflictError: a model with this name already exists
    """
    model = DeviceModel(name=name.strip(), description=description or None)
    db.add(model)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Duplicate model name rejected: {name}")
        raise ConflictError("Model name already exists")

    db.refresh(model)
    logger.info(f"Model created: id={model.id}, name={model.name}")
    return _model_out(model)


def update_model(
    db: Session,
    model_id: int,
    name: str,
    description: Optional[str] = None,
) -> DeviceModelOut:
    """
    Rename / re-describe a device model.

    Raises:
        NotFoundError: no model with this id
        ConflictError: the new name belongs to another model
    """
    model = _get_model_or_404(db, model_id)
    model.name = name.strip()
    model.description = description or None
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Rename of model {model_id} to {name} rejected: duplicate")
        raise ConflictError("Model name already exists")

    db.refresh(model)
    logger.info(f"Model updated: id={model_id}")
    return _model_out(model, _count_commands(db, model_id))


def delete_model(db: Session, model_id: int) -> DeviceModelOut:
    """
    Delete a device model that has no commands.

    The FK on commands would cascade, but operators must remove commands
    explicitly first, so a model with commands is never deleted here.

    Raises:
        ConflictError: the model still has commands
        NotFoundError: no model with this id
    """
    command_count = _count_commands(db, model_id)
    if command_count > 0:
        logger.info(f"Delete of model {model_id} blocked by {command_count} commands")
        raise ConflictError(
            f"Cannot delete model. It has {command_count} associated commands.",
            suggestion="Delete all commands first.",
        )

    model = _get_model_or_404(db, model_id)
    deleted = _model_out(model)
    db.delete(model)
    db.commit()
    logger.info(f"Model deleted: id={model_id}, name={deleted.name}")
    return deleted


# =============================================================================
# Commands
# =============================================================================

def _command_out(command: Command, model_name: Optional[str]) -> CommandOut:
    return CommandOut(
        id=command.id,
        model_id=command.model_id,
        command_text=command.command_text,
        description=command.description,
        created_at=command.created_at,
        updated_at=command.updated_at,
        model_name=model_name,
    )


def _get_command_or_404(db: Session, command_id: int) -> Command:
    command = db.get(Command, command_id)
    if command is None:
        raise NotFoundError("Command not found")
    return command


def list_commands(db: Session, model_id: Optional[int] = None) -> list[CommandOut]:
    """
    List commands joined with their model name.

    With model_id, only that model's commands ordered by text (NotFoundError
    if the model does not exist); otherwise all commands ordered by model
    name, then text.
    """
    query = db.query(Command, DeviceModel.name).join(DeviceModel, Command.model_id == DeviceModel.id)

    if model_id is not None:
        _get_model_or_404(db, model_id)
        query = query.filter(Command.model_id == model_id).order_by(Command.command_text)
    else:
        query = query.order_by(DeviceModel.name, Command.command_text)

    return [_command_out(command, model_name) for command, model_name in query.all()]


def get_command(db: Session, command_id: int) -> CommandOut:
    command = _get_command_or_404(db, command_id)
    return _command_out(command, command.model.name)


def create_command(
    db: Session,
    model_id: int,
    command_text: str,
    description: Optional[str] = None,
) -> CommandOut:
    """
    Add a command to a device model.

    Raises:
        NotFoundError: the model does not exist
        ConflictError: the model already has this command text
    """
    model = _get_model_or_404(db, model_id)
    command = Command(model_id=model.id, command_text=command_text.strip(), description=description or None)
    db.add(command)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Duplicate command rejected: model={model_id}, text={command_text}")
        raise ConflictError("Command already exists for this model")

    db.refresh(command)
    logger.info(f"Command created: id={command.id}, model={model.name}")
    return _command_out(command, model.name)


def update_command(
    db: Session,
    command_id: int,
    command_text: str,
    description: Optional[str] = None,
) -> CommandOut:
    """
    Raises:
        NotFoundError: no command with this id
        ConflictError: the owning model already has the new text
    """
    command = _get_command_or_404(db, command_id)
    new_text = command_text.strip()
    command.command_text = new_text
    command.description = description or None
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Update of command {command_id} to {new_text} rejected: duplicate")
        raise ConflictError("Command already exists for this model")

    db.refresh(command)
    logger.info(f"Command updated: id={command_id}")
    return _command_out(command, command.model.name)


def delete_command(db: Session, command_id: int) -> CommandOut:
    command = _get_command_or_404(db, command_id)
    deleted = _command_out(command, command.model.name)
    db.delete(command)
    db.commit()
    logger.info(f"Command deleted: id={command_id}")
    return deleted


# =============================================================================
# Legacy message log
# =============================================================================

def create_legacy_message(
    db: Session,
    phone: str,
    message: str,
    sender: Optional[str] = None,
) -> SmsMessage:
    """Insert a row into the legacy sms_messages table."""
    row = SmsMessage(phone=phone.strip(), message=message, sender=sender or "system")
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info(f"Legacy message stored: id={row.id}")
    return row
