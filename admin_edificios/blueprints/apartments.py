"""Apartments blueprint: CRUD, balances and cuenta corriente per apartment."""
from flask import Blueprint, jsonify, request, send_file, current_app

from admin_edificios.database import get_session
from admin_edificios.services import apartment_service, transaction_service, report_service
from admin_edificios.services.pdf_service import generate_apartment_statement_pdf

apartments_bp = Blueprint('apartments', __name__, url_prefix='/api/apartments')


@apartments_bp.route('', methods=['GET'])
def list_apartments():
    session = get_session()
    balances = transaction_service.get_account_balances(session)
    result = []
    for apartment in apartment_service.list_apartments(session):
        data = apartment_service.serialize_apartment(apartment)
        data['balance'] = str(balances.get(apartment.id, 0))
        result.append(data)
    return jsonify(result)


@apartments_bp.route('', methods=['POST'])
def create_apartment():
    apartment = apartment_service.create_apartment(request.get_json(silent=True) or {}, get_session())
    current_app.logger.info(f"Apartamento {apartment.number} creado")
    return jsonify(apartment_service.serialize_apartment(apartment)), 201


@apartments_bp.route('/<int:apartment_id>', methods=['GET'])
def get_apartment(apartment_id):
    apartment = apartment_service.get_apartment(apartment_id, get_session())
    return jsonify(apartment_service.serialize_apartment(apartment))


@apartments_bp.route('/<int:apartment_id>', methods=['PUT', 'PATCH'])
def update_apartment(apartment_id):
    apartment = apartment_service.update_apartment(apartment_id, request.get_json(silent=True) or {}, get_session())
    return jsonify(apartment_service.serialize_apartment(apartment))


@apartments_bp.route('/<int:apartment_id>', methods=['DELETE'])
def delete_apartment(apartment_id):
    apartment_service.delete_apartment(apartment_id, get_session())
    return jsonify({'status': 'success'})


@apartments_bp.route('/balances', methods=['GET'])
def balances():
    """Saldo (cargos - recibos) per apartment id."""
    data = transaction_service.get_account_balances(get_session())
    return jsonify({str(apartment_id): str(balance) for apartment_id, balance in data.items()})


@apartments_bp.route('/<int:apartment_id>/ledger', methods=['GET'])
def ledger(apartment_id):
    return jsonify(transaction_service.get_apartment_ledger(apartment_id, get_session()))


@apartments_bp.route('/<int:apartment_id>/ledger.pdf', methods=['GET'])
def ledger_pdf(apartment_id):
    session = get_session()
    ledger_data = transaction_service.get_apartment_ledger(apartment_id, session)
    pdf = generate_apartment_statement_pdf(
        ledger_data,
        current_app.config.get('BUILDING_NAME', ''),
        report_service.get_report_footer(session)
    )
    return send_file(
        pdf,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f"cuenta-apto-{ledger_data['number']}.pdf"
    )
