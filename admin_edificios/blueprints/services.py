"""Service providers blueprint (directorio de servicios)."""
from flask import Blueprint, jsonify, request, send_file

from admin_edificios.database import get_session
from admin_edificios.models import ServiceType
from admin_edificios.services import service_provider_service, report_service
from admin_edificios.services.pdf_service import generate_service_directory_pdf
from admin_edificios.utils.parsing import parse_bool, parse_enum

services_bp = Blueprint('services', __name__, url_prefix='/api/services')


def _filtered_providers():
    return service_provider_service.list_providers(
        get_session(),
        active_only=parse_bool(request.args.get('active')),
        service_type=parse_enum(ServiceType, request.args.get('type'), 'tipo')
    )


@services_bp.route('', methods=['GET'])
def list_providers():
    return jsonify([service_provider_service.serialize_provider(p) for p in _filtered_providers()])


@services_bp.route('', methods=['POST'])
def create_provider():
    provider = service_provider_service.create_provider(request.get_json(silent=True) or {}, get_session())
    return jsonify(service_provider_service.serialize_provider(provider)), 201


@services_bp.route('/<int:provider_id>', methods=['GET'])
def get_provider(provider_id):
    provider = service_provider_service.get_provider(provider_id, get_session())
    return jsonify(service_provider_service.serialize_provider(provider))


@services_bp.route('/<int:provider_id>', methods=['PUT', 'PATCH'])
def update_provider(provider_id):
    provider = service_provider_service.update_provider(provider_id, request.get_json(silent=True) or {}, get_session())
    return jsonify(service_provider_service.serialize_provider(provider))


@services_bp.route('/<int:provider_id>', methods=['DELETE'])
def delete_provider(provider_id):
    service_provider_service.delete_provider(provider_id, get_session())
    return jsonify({'status': 'success'})


@services_bp.route('/<int:provider_id>/whatsapp', methods=['GET'])
def whatsapp(provider_id):
    provider = service_provider_service.get_provider(provider_id, get_session())
    url = service_provider_service.provider_whatsapp_link(provider, request.args.get('message'))
    if not url:
        return jsonify({'status': 'error', 'message': 'El servicio no tiene un celular registrado'}), 400
    return jsonify({'url': url})


@services_bp.route('/directory.pdf', methods=['GET'])
def directory_pdf():
    pdf = generate_service_directory_pdf(_filtered_providers(), report_service.get_report_footer(get_session()))
    return send_file(pdf, mimetype='application/pdf', as_attachment=True, download_name='directorio-servicios.pdf')
