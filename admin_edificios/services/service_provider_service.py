"""Service provider directory (electricistas, plomeros, UTE, OSE...)."""
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admin_edificios.exceptions import BusinessLogicError, NotFoundError, StoreError
from admin_edificios.models import ServiceProvider, ServiceType
from admin_edificios.utils.formatters import whatsapp_link
from admin_edificios.utils.parsing import parse_enum, parse_bool, require_text, optional_text

logger = logging.getLogger(__name__)


def _clean(data: dict, partial: bool = False) -> dict:
    values = {}
    if not partial or 'type' in data:
        values['type'] = parse_enum(ServiceType, data.get('type'), 'tipo', required=True)
    if not partial or 'name' in data:
        values['name'] = require_text(data.get('name'), 'nombre')
    for key in ('phone', 'email', 'notes'):
        if key in data:
            values[key] = optional_text(data.get(key))
    if 'active' in data:
        values['active'] = parse_bool(data.get('active'), default=True)
    return values


def list_providers(session: Session, active_only: bool = False, service_type: Optional[ServiceType] = None) -> List[ServiceProvider]:
    query = session.query(ServiceProvider)
    if active_only:
        query = query.filter(ServiceProvider.active.is_(True))
    if service_type is not None:
        query = query.filter(ServiceProvider.type == service_type)
    return query.order_by(ServiceProvider.type.asc(), ServiceProvider.name.asc()).all()


def get_provider(provider_id: int, session: Session) -> ServiceProvider:
    provider = session.get(ServiceProvider, provider_id)
    if not provider:
        raise NotFoundError("El servicio no fue encontrado")
    return provider


def create_provider(data: dict, session: Session) -> ServiceProvider:
    try:
        provider = ServiceProvider(**_clean(data))
        session.add(provider)
        session.commit()
        logger.info(f"[SERVICE] Creado servicio '{provider.name}' ({provider.type.value})")
        return provider
    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("[SERVICE] Error al crear servicio")
        raise StoreError("Error al crear el servicio. Verifica la conexión a la base de datos.") from e


def update_provider(provider_id: int, data: dict, session: Session) -> ServiceProvider:
    try:
        provider = get_provider(provider_id, session)
        for key, value in _clean(data, partial=True).items():
            setattr(provider, key, value)
        session.commit()
        return provider
    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[SERVICE] Error al actualizar servicio {provider_id}")
        raise StoreError("Error al actualizar el servicio") from e


def delete_provider(provider_id: int, session: Session) -> None:
    try:
        provider = get_provider(provider_id, session)
        session.delete(provider)
        session.commit()
    except NotFoundError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[SERVICE] Error al eliminar servicio {provider_id}")
        raise StoreError("Error al eliminar el servicio") from e


def provider_whatsapp_link(provider: ServiceProvider, message: Optional[str] = None) -> Optional[str]:
    """wa.me link for the provider phone, None when there is no phone."""
    return whatsapp_link(provider.phone, message)


def serialize_provider(provider: ServiceProvider) -> dict:
    return {
        'id': provider.id,
        'type': provider.type.value,
        'type_label': provider.type_label,
        'name': provider.name,
        'phone': provider.phone,
        'email': provider.email,
        'notes': provider.notes,
        'active': provider.active,
        'whatsapp_url': provider_whatsapp_link(provider),
    }
