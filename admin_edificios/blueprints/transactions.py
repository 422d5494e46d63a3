"""Transactions blueprint: income/expense, credit sales and payment receipts."""
from flask import Blueprint, jsonify, request, send_file, current_app

from admin_edificios.database import get_session
from admin_edificios.exceptions import ValidationError
from admin_edificios.models import TransactionType
from admin_edificios.services import transaction_service, report_service
from admin_edificios.services.pdf_service import generate_receipt_pdf
from admin_edificios.utils.parsing import parse_enum, parse_int, parse_datetime

transactions_bp = Blueprint('transactions', __name__, url_prefix='/api/transactions')


@transactions_bp.route('', methods=['GET'])
def list_transactions():
    transactions = transaction_service.list_transactions(
        get_session(),
        tx_type=parse_enum(TransactionType, request.args.get('type'), 'tipo'),
        apartment_id=parse_int(request.args.get('apartment_id'), 'apartment_id'),
        start=parse_datetime(request.args.get('start'), 'desde'),
        end=parse_datetime(request.args.get('end'), 'hasta', end_of_day=True),
        limit=parse_int(request.args.get('limit'), 'limit')
    )
    return jsonify([transaction_service.serialize_transaction(tx) for tx in transactions])


@transactions_bp.route('', methods=['POST'])
def create_transaction():
    transaction = transaction_service.create_transaction(request.get_json(silent=True) or {}, get_session())
    return jsonify(transaction_service.serialize_transaction(transaction)), 201


@transactions_bp.route('/credit-sales', methods=['POST'])
def create_credit_sale():
    credit_sale = transaction_service.create_credit_sale(request.get_json(silent=True) or {}, get_session())
    return jsonify(transaction_service.serialize_transaction(credit_sale)), 201


@transactions_bp.route('/receipts', methods=['POST'])
def register_payment_receipt():
    """
    Register a payment receipt for an apartment.

    The amount settles the apartment's pending credit sales, oldest first.
    Response includes the receipt, the allocations and the unallocated leftover.
    """
    result = transaction_service.register_payment_receipt(request.get_json(silent=True) or {}, get_session())
    return jsonify(transaction_service.serialize_allocation(result)), 201


@transactions_bp.route('/receipts/unlinked', methods=['GET'])
def unlinked_receipts():
    receipts = transaction_service.list_unlinked_receipts(get_session())
    return jsonify([transaction_service.serialize_transaction(tx) for tx in receipts])


@transactions_bp.route('/<int:transaction_id>/link-bank', methods=['POST'])
def link_receipt(transaction_id):
    payload = request.get_json(silent=True) or {}
    bank_account_id = parse_int(payload.get('bank_account_id'), 'cuenta bancaria', required=True)
    movement = transaction_service.link_receipt_to_bank(transaction_id, bank_account_id, get_session())
    return jsonify({'status': 'success', 'bank_movement_id': movement.id}), 201


@transactions_bp.route('/<int:transaction_id>/receipt.pdf', methods=['GET'])
def receipt_pdf(transaction_id):
    session = get_session()
    transaction = transaction_service.get_transaction(transaction_id, session)
    if transaction.type != TransactionType.PAYMENT_RECEIPT:
        raise ValidationError("Solo los recibos de pago tienen comprobante")
    pdf = generate_receipt_pdf(
        transaction,
        current_app.config.get('BUILDING_NAME', ''),
        report_service.get_report_footer(session)
    )
    return send_file(pdf, mimetype='application/pdf', as_attachment=True, download_name=f"recibo-{transaction.id}.pdf")


@transactions_bp.route('/monthly-charges', methods=['POST'])
def generate_monthly_charges():
    result = transaction_service.generate_monthly_charges(get_session())
    return jsonify({'status': 'success', **result}), 201


@transactions_bp.route('/<int:transaction_id>', methods=['GET'])
def get_transaction(transaction_id):
    transaction = transaction_service.get_transaction(transaction_id, get_session())
    return jsonify(transaction_service.serialize_transaction(transaction))


@transactions_bp.route('/<int:transaction_id>', methods=['PUT', 'PATCH'])
def update_transaction(transaction_id):
    transaction = transaction_service.update_transaction(transaction_id, request.get_json(silent=True) or {}, get_session())
    return jsonify(transaction_service.serialize_transaction(transaction))


@transactions_bp.route('/<int:transaction_id>', methods=['DELETE'])
def delete_transaction(transaction_id):
    transaction_service.delete_transaction(transaction_id, get_session())
    return jsonify({'status': 'success'})
