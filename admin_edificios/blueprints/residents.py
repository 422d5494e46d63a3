"""Residents blueprint (inquilinos / propietarios)."""
from flask import Blueprint, jsonify, request

from admin_edificios.database import get_session
from admin_edificios.services import resident_service
from admin_edificios.utils.parsing import parse_bool, parse_int

residents_bp = Blueprint('residents', __name__, url_prefix='/api/residents')


@residents_bp.route('', methods=['GET'])
def list_residents():
    residents = resident_service.list_residents(
        get_session(),
        apartment_id=parse_int(request.args.get('apartment_id'), 'apartment_id'),
        active_only=parse_bool(request.args.get('active'))
    )
    return jsonify([resident_service.serialize_resident(r) for r in residents])


@residents_bp.route('', methods=['POST'])
def create_resident():
    resident = resident_service.create_resident(request.get_json(silent=True) or {}, get_session())
    return jsonify(resident_service.serialize_resident(resident)), 201


@residents_bp.route('/<int:resident_id>', methods=['GET'])
def get_resident(resident_id):
    return jsonify(resident_service.serialize_resident(resident_service.get_resident(resident_id, get_session())))


@residents_bp.route('/<int:resident_id>', methods=['PUT', 'PATCH'])
def update_resident(resident_id):
    resident = resident_service.update_resident(resident_id, request.get_json(silent=True) or {}, get_session())
    return jsonify(resident_service.serialize_resident(resident))


@residents_bp.route('/<int:resident_id>', methods=['DELETE'])
def delete_resident(resident_id):
    resident_service.delete_resident(resident_id, get_session())
    return jsonify({'status': 'success'})
