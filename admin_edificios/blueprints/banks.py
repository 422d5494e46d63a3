"""Banks blueprint: accounts, movements, reconciliation and statements."""
from flask import Blueprint, jsonify, request, send_file

from admin_edificios.database import get_session
from admin_edificios.services import bank_service, report_service
from admin_edificios.services.pdf_service import generate_account_statement_pdf
from admin_edificios.utils.parsing import parse_bool, parse_int, parse_datetime
from admin_edificios.utils.serialization import to_jsonable

banks_bp = Blueprint('banks', __name__, url_prefix='/api/banks')


# ============ CUENTAS ============

@banks_bp.route('/accounts', methods=['GET'])
def list_accounts():
    session = get_session()
    accounts = bank_service.list_accounts(session, active_only=parse_bool(request.args.get('active')))
    return jsonify([bank_service.serialize_account(a, session) for a in accounts])


@banks_bp.route('/accounts', methods=['POST'])
def create_account():
    session = get_session()
    account = bank_service.create_account(request.get_json(silent=True) or {}, session)
    return jsonify(bank_service.serialize_account(account, session)), 201


@banks_bp.route('/accounts/<int:account_id>', methods=['GET'])
def get_account(account_id):
    session = get_session()
    return jsonify(bank_service.serialize_account(bank_service.get_account(account_id, session), session))


@banks_bp.route('/accounts/<int:account_id>', methods=['PUT', 'PATCH'])
def update_account(account_id):
    session = get_session()
    account = bank_service.update_account(account_id, request.get_json(silent=True) or {}, session)
    return jsonify(bank_service.serialize_account(account, session))


@banks_bp.route('/accounts/<int:account_id>', methods=['DELETE'])
def delete_account(account_id):
    bank_service.delete_account(account_id, get_session())
    return jsonify({'status': 'success'})


def _statement(account_id):
    return bank_service.get_account_statement(
        account_id,
        get_session(),
        start=parse_datetime(request.args.get('start'), 'desde'),
        end=parse_datetime(request.args.get('end'), 'hasta', end_of_day=True)
    )


@banks_bp.route('/accounts/<int:account_id>/statement', methods=['GET'])
def statement(account_id):
    return jsonify(to_jsonable(_statement(account_id)))


@banks_bp.route('/accounts/<int:account_id>/statement.pdf', methods=['GET'])
def statement_pdf(account_id):
    data = _statement(account_id)
    pdf = generate_account_statement_pdf(data, report_service.get_report_footer(get_session()))
    return send_file(pdf, mimetype='application/pdf', as_attachment=True, download_name=f"estado-cuenta-{account_id}.pdf")


# ============ MOVIMIENTOS ============

@banks_bp.route('/movements', methods=['GET'])
def list_movements():
    movements = bank_service.list_movements(
        get_session(),
        bank_account_id=parse_int(request.args.get('account_id'), 'cuenta'),
        start=parse_datetime(request.args.get('start'), 'desde'),
        end=parse_datetime(request.args.get('end'), 'hasta', end_of_day=True)
    )
    return jsonify([bank_service.serialize_movement(m) for m in movements])


@banks_bp.route('/movements', methods=['POST'])
def create_movement():
    movement = bank_service.create_movement(request.get_json(silent=True) or {}, get_session())
    return jsonify(bank_service.serialize_movement(movement)), 201


@banks_bp.route('/movements/<int:movement_id>', methods=['GET'])
def get_movement(movement_id):
    return jsonify(bank_service.serialize_movement(bank_service.get_movement(movement_id, get_session())))


@banks_bp.route('/movements/<int:movement_id>', methods=['PUT', 'PATCH'])
def update_movement(movement_id):
    movement = bank_service.update_movement(movement_id, request.get_json(silent=True) or {}, get_session())
    return jsonify(bank_service.serialize_movement(movement))


@banks_bp.route('/movements/<int:movement_id>', methods=['DELETE'])
def delete_movement(movement_id):
    bank_service.delete_movement(movement_id, get_session())
    return jsonify({'status': 'success'})


@banks_bp.route('/movements/<int:movement_id>/reconcile', methods=['POST'])
def reconcile(movement_id):
    payload = request.get_json(silent=True) or {}
    movement = bank_service.reconcile_movement(movement_id, parse_bool(payload.get('reconciled'), default=True), get_session())
    return jsonify(bank_service.serialize_movement(movement))
