"""Resident (propietarios e inquilinos) service."""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from admin_edificios.exceptions import BusinessLogicError, NotFoundError, StoreError
from admin_edificios.models import Resident, Apartment, OccupancyType
from admin_edificios.utils.parsing import (
    parse_enum, parse_int, parse_bool, parse_datetime, require_text, optional_text
)

logger = logging.getLogger(__name__)


def _clean(data: dict, session: Session, partial: bool = False) -> dict:
    values = {}

    if not partial or 'first_name' in data:
        values['first_name'] = require_text(data.get('first_name'), 'nombre')
    if not partial or 'last_name' in data:
        values['last_name'] = require_text(data.get('last_name'), 'apellido')
    for key in ('national_id', 'email', 'phone', 'notes'):
        if key in data:
            values[key] = optional_text(data.get(key))
    if not partial or 'type' in data:
        values['type'] = parse_enum(OccupancyType, data.get('type'), 'tipo') or OccupancyType.TENANT
    if 'active' in data:
        values['active'] = parse_bool(data.get('active'), default=True)
    if data.get('moved_in_at'):
        values['moved_in_at'] = parse_datetime(data.get('moved_in_at'), 'fecha de ingreso')
    if 'moved_out_at' in data:
        values['moved_out_at'] = parse_datetime(data.get('moved_out_at'), 'fecha de egreso')
    if 'apartment_id' in data:
        apartment_id = parse_int(data.get('apartment_id'), 'apartamento')
        if apartment_id is not None and not session.get(Apartment, apartment_id):
            raise NotFoundError("Apartamento no encontrado")
        values['apartment_id'] = apartment_id

    return values


def list_residents(session: Session, apartment_id: Optional[int] = None, active_only: bool = False) -> List[Resident]:
    query = session.query(Resident)
    if apartment_id is not None:
        query = query.filter(Resident.apartment_id == apartment_id)
    if active_only:
        query = query.filter(Resident.active.is_(True))
    return query.order_by(Resident.last_name.asc(), Resident.first_name.asc()).all()


def get_resident(resident_id: int, session: Session) -> Resident:
    resident = session.get(Resident, resident_id)
    if not resident:
        raise NotFoundError("El inquilino no fue encontrado")
    return resident


def _check_national_id(session: Session, national_id: Optional[str], exclude_id: int = None):
    if not national_id:
        return
    query = session.query(Resident).filter(Resident.national_id == national_id)
    if exclude_id is not None:
        query = query.filter(Resident.id != exclude_id)
    if query.first():
        raise BusinessLogicError(f"Ya existe un inquilino con la cédula {national_id}")


def create_resident(data: dict, session: Session) -> Resident:
    try:
        values = _clean(data, session)
        _check_national_id(session, values.get('national_id'))

        resident = Resident(**values)
        session.add(resident)
        session.commit()
        return resident

    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except IntegrityError as e:
        session.rollback()
        raise BusinessLogicError("Ya existe un inquilino con esa cédula") from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("[RESIDENT] Error al crear inquilino")
        raise StoreError("Error al crear el inquilino. Verifica la conexión a la base de datos.") from e


def update_resident(resident_id: int, data: dict, session: Session) -> Resident:
    try:
        resident = get_resident(resident_id, session)
        values = _clean(data, session, partial=True)
        if 'national_id' in values:
            _check_national_id(session, values['national_id'], exclude_id=resident.id)

        for key, value in values.items():
            setattr(resident, key, value)
        session.commit()
        return resident

    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[RESIDENT] Error al actualizar inquilino {resident_id}")
        raise StoreError("Error al actualizar el inquilino") from e


def delete_resident(resident_id: int, session: Session) -> None:
    try:
        resident = get_resident(resident_id, session)
        session.delete(resident)
        session.commit()
    except NotFoundError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[RESIDENT] Error al eliminar inquilino {resident_id}")
        raise StoreError("Error al eliminar el inquilino") from e


def serialize_resident(resident: Resident) -> dict:
    return {
        'id': resident.id,
        'first_name': resident.first_name,
        'last_name': resident.last_name,
        'full_name': resident.full_name,
        'national_id': resident.national_id,
        'email': resident.email,
        'phone': resident.phone,
        'type': resident.type.value,
        'active': resident.active,
        'moved_in_at': resident.moved_in_at.isoformat() if resident.moved_in_at else None,
        'moved_out_at': resident.moved_out_at.isoformat() if resident.moved_out_at else None,
        'notes': resident.notes,
        'apartment_id': resident.apartment_id,
        'apartment_number': resident.apartment.number if resident.apartment else None,
    }
