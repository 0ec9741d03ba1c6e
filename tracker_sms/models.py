"""
SQLAlchemy ORM models for database tables.

This module contains database table definitions using SQLAlchemy.
For Pydantic request/response schemas, see schemas.py.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from tracker_sms.storage import Base


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class DeviceModel(Base):
    """
    A class of GPS tracker hardware (e.g. TK103) with its own command set.

    Table: device_models
    """
    __tablename__ = "device_models"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    commands = relationship(
        "Command",
        back_populates="model",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Command(Base):
    """
    A literal command string scoped to one device model.

    Table: commands
    Unique: (model_id, command_text)
    """
    __tablename__ = "commands"
    __table_args__ = (
        UniqueConstraint("model_id", "command_text", name="uq_commands_model_text"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    model_id = Column(
        Integer,
        ForeignKey("device_models.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    command_text = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    model = relationship("DeviceModel", back_populates="commands")


class SmsHistory(Base):
    """
    Append-only audit record of one command transmission to one phone number.

    command_text is a copy, not a foreign key, so rows survive command
    deletion. model_id is nulled (not cascaded) when its model is deleted.
    """
    __tablename__ = "sms_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone_number = Column(String(20), nullable=False, index=True)
    model_id = Column(
        Integer,
        ForeignKey("device_models.id", ondelete="SET NULL"),
        nullable=True,
    )
    command_text = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="sent", index=True)
    sent_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    details = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    response_data = Column(JSON, nullable=True)


class SmsMessage(Base):
    """
    Legacy message log backing POST /api/sms.

    Table: sms_messages
    """
    __tablename__ = "sms_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone = Column(String(20), nullable=False)
    message = Column(Text, nullable=False)
    sender = Column(String(100), nullable=False, default="system")
    status = Column(String(20), nullable=False, default="sent")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
