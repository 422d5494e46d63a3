"""Apartment service: units, their monthly fees and contact data."""
import logging
from decimal import Decimal
from typing import List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from admin_edificios.exceptions import BusinessLogicError, NotFoundError, StoreError
from admin_edificios.models import Apartment, OccupancyType, OCCUPANCY_LABELS
from admin_edificios.utils.parsing import (
    parse_enum, parse_money, parse_int, require_text, optional_text
)

logger = logging.getLogger(__name__)

def _clean(data: dict, partial: bool = False) -> dict:
    """Validate and coerce an apartment payload."""
    values = {}

    if not partial or 'number' in data:
        values['number'] = require_text(data.get('number'), 'número')
    if 'floor' in data:
        values['floor'] = parse_int(data.get('floor'), 'piso')
    for key, label in (('common_expenses', 'gastos comunes'), ('reserve_fund', 'fondo de reserva'), ('share', 'alícuota')):
        if key in data:
            values[key] = parse_money(data.get(key), label) or Decimal('0')
    if not partial or 'occupancy_type' in data:
        values['occupancy_type'] = parse_enum(
            OccupancyType, data.get('occupancy_type'), 'tipo de ocupación'
        ) or OccupancyType.OWNER
    for key in ('contact_first_name', 'contact_last_name', 'contact_phone', 'contact_email', 'notes'):
        if key in data:
            values[key] = optional_text(data.get(key))

    return values


def list_apartments(session: Session) -> List[Apartment]:
    """All apartments ordered by floor and number (owner row before tenant row)."""
    apartments = session.query(Apartment).all()
    return sorted(
        apartments,
        key=lambda a: (a.floor if a.floor is not None else 0, _number_key(a.number), a.occupancy_type.value)
    )


def _number_key(number: str):
    # "101" < "102" < "1001" and "PB" after numeric units
    return (0, int(number), '') if number.isdigit() else (1, 0, number)


def get_apartment(apartment_id: int, session: Session) -> Apartment:
    apartment = session.get(Apartment, apartment_id)
    if not apartment:
        raise NotFoundError("Apartamento no encontrado")
    return apartment


def _check_unique(session: Session, number: str, occupancy_type: OccupancyType, exclude_id: int = None):
    query = session.query(Apartment).filter(
        Apartment.number == number,
        Apartment.occupancy_type == occupancy_type
    )
    if exclude_id is not None:
        query = query.filter(Apartment.id != exclude_id)
    if query.first():
        raise BusinessLogicError(
            f"Ya existe el apartamento {number} ({OCCUPANCY_LABELS[occupancy_type]})"
        )


def create_apartment(data: dict, session: Session) -> Apartment:
    """
    Create an apartment.

    Raises:
        ValidationError: Missing number or invalid amounts
        BusinessLogicError: Same number and occupancy type already exists
    """
    try:
        values = _clean(data)
        _check_unique(session, values['number'], values['occupancy_type'])

        apartment = Apartment(**values)
        session.add(apartment)
        session.commit()

        logger.info(f"[APARTMENT] Creado apto {apartment.number} (id={apartment.id})")
        return apartment

    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except IntegrityError as e:
        session.rollback()
        raise BusinessLogicError("Ya existe un apartamento con ese número y tipo de ocupación") from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("[APARTMENT] Error al crear apartamento")
        raise StoreError("Error al crear el apartamento") from e


def update_apartment(apartment_id: int, data: dict, session: Session) -> Apartment:
    try:
        apartment = get_apartment(apartment_id, session)
        values = _clean(data, partial=True)

        number = values.get('number', apartment.number)
        occupancy_type = values.get('occupancy_type', apartment.occupancy_type)
        _check_unique(session, number, occupancy_type, exclude_id=apartment.id)

        for key, value in values.items():
            setattr(apartment, key, value)
        session.commit()
        return apartment

    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[APARTMENT] Error al actualizar apartamento {apartment_id}")
        raise StoreError("Error al actualizar el apartamento") from e


def delete_apartment(apartment_id: int, session: Session) -> None:
    """Delete an apartment. Its transactions and residents keep existing without it."""
    try:
        apartment = get_apartment(apartment_id, session)
        session.delete(apartment)
        session.commit()
        logger.info(f"[APARTMENT] Eliminado apto id={apartment_id}")
    except NotFoundError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[APARTMENT] Error al eliminar apartamento {apartment_id}")
        raise StoreError("Error al eliminar el apartamento") from e


def serialize_apartment(apartment: Apartment) -> dict:
    return {
        'id': apartment.id,
        'number': apartment.number,
        'floor': apartment.floor,
        'share': str(apartment.share) if apartment.share is not None else None,
        'common_expenses': str(apartment.common_expenses),
        'reserve_fund': str(apartment.reserve_fund),
        'occupancy_type': apartment.occupancy_type.value,
        'occupancy_label': apartment.occupancy_label,
        'contact_first_name': apartment.contact_first_name,
        'contact_last_name': apartment.contact_last_name,
        'contact_phone': apartment.contact_phone,
        'contact_email': apartment.contact_email,
        'notes': apartment.notes,
    }
