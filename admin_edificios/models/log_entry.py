"""Logbook (bitácora) entry model."""
from sqlalchemy import Column, Integer, DateTime, Text, Enum
from sqlalchemy.sql import func
from admin_edificios.database import Base
import enum


class LogEntryType(enum.Enum):
    """Kind of logbook entry."""
    NEWS = "NEWS"
    DUE_DATE = "DUE_DATE"
    MAINTENANCE = "MAINTENANCE"
    MEETING = "MEETING"
    INCIDENT = "INCIDENT"
    REMINDER = "REMINDER"
    OTHER = "OTHER"


class LogEntryStatus(enum.Enum):
    """Follow-up status of a logbook entry."""
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


LOG_TYPE_LABELS = {
    LogEntryType.NEWS: 'Novedad',
    LogEntryType.DUE_DATE: 'Vencimiento',
    LogEntryType.MAINTENANCE: 'Mantenimiento',
    LogEntryType.MEETING: 'Reunión',
    LogEntryType.INCIDENT: 'Incidente',
    LogEntryType.REMINDER: 'Recordatorio',
    LogEntryType.OTHER: 'Otro',
}

LOG_STATUS_LABELS = {
    LogEntryStatus.PENDING: 'Pendiente',
    LogEntryStatus.IN_PROGRESS: 'En proceso',
    LogEntryStatus.DONE: 'Realizado',
    LogEntryStatus.CANCELLED: 'Cancelado',
    LogEntryStatus.EXPIRED: 'Vencido',
}


class LogEntry(Base):
    """Logbook entry (registro de bitácora)."""

    __tablename__ = 'log_entry'

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    type = Column(Enum(LogEntryType, name='log_entry_type'), nullable=False)
    detail = Column(Text, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(
        Enum(LogEntryStatus, name='log_entry_status'),
        nullable=False,
        default=LogEntryStatus.PENDING
    )
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<LogEntry(id={self.id}, type={self.type.value}, status={self.status.value})>"
