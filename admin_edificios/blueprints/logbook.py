"""Logbook blueprint (bitácora de gestión)."""
from flask import Blueprint, jsonify, request, send_file

from admin_edificios.database import get_session
from admin_edificios.models import LogEntryStatus, LogEntryType
from admin_edificios.services import logbook_service, report_service
from admin_edificios.services.pdf_service import generate_logbook_pdf
from admin_edificios.utils.parsing import parse_enum, parse_datetime

logbook_bp = Blueprint('logbook', __name__, url_prefix='/api/logbook')


def _filtered_entries():
    return logbook_service.list_entries(
        get_session(),
        status=parse_enum(LogEntryStatus, request.args.get('status'), 'situación'),
        entry_type=parse_enum(LogEntryType, request.args.get('type'), 'tipo'),
        start=parse_datetime(request.args.get('start'), 'desde'),
        end=parse_datetime(request.args.get('end'), 'hasta', end_of_day=True)
    )


@logbook_bp.route('', methods=['GET'])
def list_entries():
    return jsonify([logbook_service.serialize_entry(e) for e in _filtered_entries()])


@logbook_bp.route('', methods=['POST'])
def create_entry():
    entry = logbook_service.create_entry(request.get_json(silent=True) or {}, get_session())
    return jsonify(logbook_service.serialize_entry(entry)), 201


@logbook_bp.route('/<int:entry_id>', methods=['GET'])
def get_entry(entry_id):
    return jsonify(logbook_service.serialize_entry(logbook_service.get_entry(entry_id, get_session())))


@logbook_bp.route('/<int:entry_id>', methods=['PUT', 'PATCH'])
def update_entry(entry_id):
    entry = logbook_service.update_entry(entry_id, request.get_json(silent=True) or {}, get_session())
    return jsonify(logbook_service.serialize_entry(entry))


@logbook_bp.route('/<int:entry_id>', methods=['DELETE'])
def delete_entry(entry_id):
    logbook_service.delete_entry(entry_id, get_session())
    return jsonify({'status': 'success'})


@logbook_bp.route('/export.pdf', methods=['GET'])
def export_pdf():
    pdf = generate_logbook_pdf(_filtered_entries(), report_service.get_report_footer(get_session()))
    return send_file(pdf, mimetype='application/pdf', as_attachment=True, download_name='bitacora.pdf')
