"""Logbook (bitácora) service."""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admin_edificios.exceptions import BusinessLogicError, NotFoundError, StoreError
from admin_edificios.models import LogEntry, LogEntryType, LogEntryStatus, LOG_TYPE_LABELS, LOG_STATUS_LABELS
from admin_edificios.utils.parsing import parse_enum, parse_datetime, require_text, optional_text

logger = logging.getLogger(__name__)


def _clean(data: dict, partial: bool = False) -> dict:
    values = {}
    if not partial or 'type' in data:
        values['type'] = parse_enum(LogEntryType, data.get('type'), 'tipo', required=True)
    if not partial or 'detail' in data:
        values['detail'] = require_text(data.get('detail'), 'detalle')
    if not partial or 'date' in data:
        values['date'] = parse_datetime(data.get('date'), 'fecha') or datetime.now()
    if 'status' in data or not partial:
        values['status'] = parse_enum(LogEntryStatus, data.get('status'), 'estado') or LogEntryStatus.PENDING
    if 'notes' in data:
        values['notes'] = optional_text(data.get('notes'))
    return values


def list_entries(
    session: Session,
    status: Optional[LogEntryStatus] = None,
    entry_type: Optional[LogEntryType] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> List[LogEntry]:
    """Logbook entries, newest first."""
    query = session.query(LogEntry)
    if status is not None:
        query = query.filter(LogEntry.status == status)
    if entry_type is not None:
        query = query.filter(LogEntry.type == entry_type)
    if start is not None:
        query = query.filter(LogEntry.date >= start)
    if end is not None:
        query = query.filter(LogEntry.date <= end)
    return query.order_by(LogEntry.date.desc(), LogEntry.id.desc()).all()


def get_entry(entry_id: int, session: Session) -> LogEntry:
    entry = session.get(LogEntry, entry_id)
    if not entry:
        raise NotFoundError("El registro no fue encontrado")
    return entry


def create_entry(data: dict, session: Session) -> LogEntry:
    try:
        entry = LogEntry(**_clean(data))
        session.add(entry)
        session.commit()
        return entry
    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("[LOGBOOK] Error al crear registro")
        raise StoreError("Error al crear el registro. Verifica la conexión a la base de datos.") from e


def update_entry(entry_id: int, data: dict, session: Session) -> LogEntry:
    try:
        entry = get_entry(entry_id, session)
        for key, value in _clean(data, partial=True).items():
            setattr(entry, key, value)
        session.commit()
        return entry
    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[LOGBOOK] Error al actualizar registro {entry_id}")
        raise StoreError("Error al actualizar el registro") from e


def delete_entry(entry_id: int, session: Session) -> None:
    try:
        entry = get_entry(entry_id, session)
        session.delete(entry)
        session.commit()
    except NotFoundError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[LOGBOOK] Error al eliminar registro {entry_id}")
        raise StoreError("Error al eliminar el registro") from e


def serialize_entry(entry: LogEntry) -> dict:
    return {
        'id': entry.id,
        'date': entry.date.isoformat() if entry.date else None,
        'type': entry.type.value,
        'type_label': LOG_TYPE_LABELS.get(entry.type),
        'detail': entry.detail,
        'notes': entry.notes,
        'status': entry.status.value,
        'status_label': LOG_STATUS_LABELS.get(entry.status),
    }
