"""
Transaction service - cuenta corriente and cash movements.

Handles:
- Income/expense transactions
- Credit sales (monthly gastos comunes / fondo de reserva charges)
- Payment receipts, allocated FIFO over pending credit sales
- Monthly charge generation and per-apartment balances
- Linking receipts to bank deposits
"""
import calendar
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from flask import current_app, has_app_context
from sqlalchemy import func, case, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admin_edificios.exceptions import BusinessLogicError, NotFoundError, StoreError, ValidationError
from admin_edificios.models import (
    Apartment, Transaction, TransactionType, TransactionCategory, CreditStatus,
    PaymentClassification, CLASSIFICATION_LABELS, BankAccount, BankMovement, MovementType,
    normalize_payment_method
)
from admin_edificios.services.allocation_service import (
    SqlAlchemyLedgerStore, AllocationResult, apply_payment, account_lock, derive_credit_status
)
from admin_edificios.utils.formatters import month_label
from admin_edificios.utils.parsing import (
    parse_enum, parse_money, parse_int, parse_datetime, optional_text
)

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def _positive_amount(value) -> Decimal:
    amount = parse_money(value, 'monto', required=True)
    if amount <= ZERO:
        raise ValidationError("El monto debe ser mayor a 0")
    return amount


def _payment_method(value) -> Optional[str]:
    if value is None or value == '':
        return None
    try:
        return normalize_payment_method(value)
    except ValueError as e:
        raise ValidationError(str(e))


def _get_apartment(session: Session, apartment_id) -> Apartment:
    apartment_id = parse_int(apartment_id, 'apartamento', required=True)
    apartment = session.get(Apartment, apartment_id)
    if not apartment:
        raise NotFoundError("Apartamento no encontrado")
    return apartment


def _track_overpayment_default() -> bool:
    if has_app_context():
        return bool(current_app.config.get('TRACK_OVERPAYMENT', False))
    return False


def get_transaction(transaction_id: int, session: Session) -> Transaction:
    transaction = session.get(Transaction, transaction_id)
    if not transaction:
        raise NotFoundError("Transacción no encontrada")
    return transaction


def list_transactions(
    session: Session,
    tx_type: Optional[TransactionType] = None,
    apartment_id: Optional[int] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = None
) -> List[Transaction]:
    """Transactions, newest first."""
    query = session.query(Transaction)
    if tx_type is not None:
        query = query.filter(Transaction.type == tx_type)
    if apartment_id is not None:
        query = query.filter(Transaction.apartment_id == apartment_id)
    if start is not None:
        query = query.filter(Transaction.date >= start)
    if end is not None:
        query = query.filter(Transaction.date <= end)
    query = query.order_by(Transaction.date.desc(), Transaction.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def create_transaction(data: dict, session: Session) -> Transaction:
    """
    Create an income or expense transaction.

    Credit sales and payment receipts have their own operations because they
    take part in the cuenta corriente.
    """
    try:
        tx_type = parse_enum(TransactionType, data.get('type'), 'tipo', required=True)
        if tx_type not in (TransactionType.INCOME, TransactionType.EXPENSE):
            raise ValidationError("Tipo de transacción no permitido. Usá venta a crédito o recibo de pago.")

        apartment_id = None
        if data.get('apartment_id') not in (None, ''):
            apartment_id = _get_apartment(session, data.get('apartment_id')).id

        transaction = Transaction(
            type=tx_type,
            amount=_positive_amount(data.get('amount')),
            date=parse_datetime(data.get('date'), 'fecha') or datetime.now(),
            category=parse_enum(TransactionCategory, data.get('category'), 'categoría'),
            description=optional_text(data.get('description')),
            reference=optional_text(data.get('reference')),
            payment_method=_payment_method(data.get('payment_method')),
            notes=optional_text(data.get('notes')),
            apartment_id=apartment_id
        )
        session.add(transaction)
        session.commit()

        logger.info(f"[TX] {tx_type.value} #{transaction.id} por {transaction.amount}")
        return transaction

    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("[TX] Error al crear transacción")
        raise StoreError("Error al crear la transacción") from e


def create_credit_sale(data: dict, session: Session, commit: bool = True) -> Transaction:
    """
    Create a credit sale (cargo) for an apartment: PENDING, nothing paid yet.

    Args:
        data: apartment_id, amount, date, category (default COMMON_EXPENSES),
            description
        session: SQLAlchemy session
        commit: False to only flush (caller owns the transaction)
    """
    try:
        apartment = _get_apartment(session, data.get('apartment_id'))

        credit_sale = Transaction(
            type=TransactionType.CREDIT_SALE,
            amount=_positive_amount(data.get('amount')),
            date=parse_datetime(data.get('date'), 'fecha') or datetime.now(),
            category=parse_enum(TransactionCategory, data.get('category'), 'categoría') or TransactionCategory.COMMON_EXPENSES,
            description=optional_text(data.get('description')),
            notes=optional_text(data.get('notes')),
            credit_status=CreditStatus.PENDING,
            paid_amount=ZERO,
            apartment_id=apartment.id
        )
        session.add(credit_sale)
        if commit:
            session.commit()
        else:
            session.flush()
        return credit_sale

    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("[TX] Error al crear venta a crédito")
        raise StoreError("Error al crear la venta a crédito") from e


def build_receipt_description(apartment: Apartment, classification: PaymentClassification, reference: Optional[str]) -> str:
    """Recibo de Pago (Gasto Común) - Apto 101 (Propietario) - Ref: X"""
    description = (
        f"Recibo de Pago ({CLASSIFICATION_LABELS[classification]}) - "
        f"Apto {apartment.number} ({apartment.occupancy_label})"
    )
    if reference:
        description += f" - Ref: {reference}"
    return description


def register_payment_receipt(data: dict, session: Session, track_overpayment: Optional[bool] = None) -> AllocationResult:
    """
    Register a payment receipt and settle pending credit sales FIFO.

    Everything (receipt, optional bank deposit, credit sale updates) is
    committed together; any failure rolls the whole receipt back.

    Args:
        data: apartment_id, amount, date, payment_method, reference, notes,
            payment_classification (default COMMON_EXPENSES), bank_account_id
        session: SQLAlchemy session
        track_overpayment: Store the unallocated leftover as CREDIT_BALANCE
            (defaults to the TRACK_OVERPAYMENT setting)

    Returns:
        AllocationResult

    Raises:
        ValidationError: amount <= 0 or invalid fields
        NotFoundError: apartment or bank account not found
        StoreError: database failure
    """
    if track_overpayment is None:
        track_overpayment = _track_overpayment_default()

    apartment_id = parse_int(data.get('apartment_id'), 'apartamento', required=True)

    with account_lock(apartment_id):
        try:
            apartment = _get_apartment(session, apartment_id)
            amount = _positive_amount(data.get('amount'))
            date = parse_datetime(data.get('date'), 'fecha') or datetime.now()
            classification = parse_enum(
                PaymentClassification, data.get('payment_classification'), 'clasificación'
            ) or PaymentClassification.COMMON_EXPENSES
            reference = optional_text(data.get('reference'))

            bank_account = None
            bank_account_id = parse_int(data.get('bank_account_id'), 'cuenta bancaria')
            if bank_account_id is not None:
                bank_account = session.get(BankAccount, bank_account_id)
                if not bank_account:
                    raise NotFoundError("La cuenta bancaria no fue encontrada")

            description = build_receipt_description(apartment, classification, reference)

            payment_meta = {
                'description': description,
                'reference': reference,
                'notes': optional_text(data.get('notes')),
                'payment_method': _payment_method(data.get('payment_method')) or normalize_payment_method(None),
                'payment_classification': classification,
                'common_expense_amount': amount if classification == PaymentClassification.COMMON_EXPENSES else None,
                'reserve_fund_amount': amount if classification == PaymentClassification.RESERVE_FUND else None,
            }

            result = apply_payment(
                SqlAlchemyLedgerStore(session),
                apartment.id,
                amount,
                date,
                payment_meta,
                track_overpayment=track_overpayment
            )

            if bank_account is not None:
                session.add(BankMovement(
                    type=MovementType.INCOME,
                    amount=amount,
                    date=date,
                    description=description,
                    reference=reference,
                    bank_account_id=bank_account.id,
                    transaction_id=result.payment.id
                ))

            session.commit()

            logger.info(
                f"[TX] Recibo #{result.payment.id} apto {apartment.number}: {amount} "
                f"({len(result.allocations)} créditos, sin aplicar {result.unallocated})"
            )
            return result

        except (BusinessLogicError, NotFoundError, StoreError):
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception("[TX] Error al crear recibo de pago")
            raise StoreError("Error al crear el recibo de pago") from e


def update_transaction(transaction_id: int, data: dict, session: Session) -> Transaction:
    """
    Update editable fields of a transaction.

    For credit sales the status is re-derived from paid_amount; the amount
    cannot go below what was already paid. Receipts are not re-allocated.
    """
    try:
        transaction = get_transaction(transaction_id, session)

        if 'amount' in data:
            amount = _positive_amount(data.get('amount'))
            if transaction.type == TransactionType.CREDIT_SALE:
                paid = transaction.paid_amount or ZERO
                if amount < paid:
                    raise ValidationError("El monto no puede ser menor a lo ya pagado")
                transaction.credit_status = derive_credit_status(paid, amount)
            transaction.amount = amount
        if 'date' in data:
            transaction.date = parse_datetime(data.get('date'), 'fecha', required=True)
        if 'category' in data:
            transaction.category = parse_enum(TransactionCategory, data.get('category'), 'categoría')
        if 'payment_method' in data:
            transaction.payment_method = _payment_method(data.get('payment_method'))
        for key in ('description', 'reference', 'notes'):
            if key in data:
                setattr(transaction, key, optional_text(data.get(key)))
        if 'apartment_id' in data:
            apartment_id = data.get('apartment_id')
            transaction.apartment_id = _get_apartment(session, apartment_id).id if apartment_id not in (None, '') else None

        session.commit()
        return transaction

    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[TX] Error al actualizar transacción {transaction_id}")
        raise StoreError("Error al actualizar la transacción") from e


def delete_transaction(transaction_id: int, session: Session) -> None:
    """Delete a transaction and the bank movements linked to it."""
    try:
        transaction = get_transaction(transaction_id, session)

        session.query(BankMovement).filter(
            BankMovement.transaction_id == transaction.id
        ).delete(synchronize_session='fetch')
        session.delete(transaction)
        session.commit()

        logger.info(f"[TX] Transacción #{transaction_id} eliminada")

    except NotFoundError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[TX] Error al eliminar transacción {transaction_id}")
        raise StoreError("Error al eliminar la transacción") from e


def generate_monthly_charges(session: Session, reference_date: Optional[datetime] = None) -> Dict[str, object]:
    """
    Create this month's gastos comunes and fondo de reserva credit sales.

    One COMMON_EXPENSES and one RESERVE_FUND credit sale per apartment, only
    when the apartment fee is > 0 and no credit sale of that category exists
    in the month yet.

    Returns:
        {'created': int, 'month': 'enero de 2026'}

    Raises:
        BusinessLogicError: No apartments, or every charge already existed
    """
    now = reference_date or datetime.now()
    month_name = month_label(now.month, now.year)
    month_start = datetime(now.year, now.month, 1)
    last_day = calendar.monthrange(now.year, now.month)[1]
    month_end = datetime(now.year, now.month, last_day, 23, 59, 59)

    try:
        apartments = session.query(Apartment).all()
        if not apartments:
            raise BusinessLogicError("No hay apartamentos registrados")

        existing = session.query(Transaction.apartment_id, Transaction.category).filter(
            Transaction.type == TransactionType.CREDIT_SALE,
            Transaction.date >= month_start,
            Transaction.date <= month_end,
            Transaction.category.in_([TransactionCategory.COMMON_EXPENSES, TransactionCategory.RESERVE_FUND])
        ).all()
        already = {(row.apartment_id, row.category) for row in existing}

        created = 0
        charges = (
            (TransactionCategory.COMMON_EXPENSES, 'common_expenses', 'Gastos Comunes'),
            (TransactionCategory.RESERVE_FUND, 'reserve_fund', 'Fondo de Reserva'),
        )
        for apartment in apartments:
            for category, fee_field, label in charges:
                fee = getattr(apartment, fee_field) or ZERO
                if fee <= ZERO or (apartment.id, category) in already:
                    continue
                session.add(Transaction(
                    type=TransactionType.CREDIT_SALE,
                    amount=fee,
                    date=now,
                    category=category,
                    description=f"{label} - {month_name}",
                    credit_status=CreditStatus.PENDING,
                    paid_amount=ZERO,
                    apartment_id=apartment.id
                ))
                created += 1

        if created == 0:
            raise BusinessLogicError(f"Ya se generaron las transacciones para {month_name}")

        session.commit()
        logger.info(f"[TX] Generadas {created} transacciones mensuales para {month_name}")
        return {'created': created, 'month': month_name}

    except BusinessLogicError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("[TX] Error al generar transacciones mensuales")
        raise StoreError("Error al generar las transacciones mensuales") from e


def get_account_balances(session: Session) -> Dict[int, Decimal]:
    """
    Cuenta corriente balance per apartment: credit sales - payment receipts.

    Positive means the apartment owes money, negative is saldo a favor.
    """
    rows = session.query(
        Transaction.apartment_id,
        func.sum(case(
            (Transaction.type == TransactionType.CREDIT_SALE, Transaction.amount),
            (Transaction.type == TransactionType.PAYMENT_RECEIPT, -Transaction.amount),
            else_=0
        ))
    ).filter(
        Transaction.apartment_id.isnot(None)
    ).group_by(Transaction.apartment_id).all()

    return {apartment_id: Decimal(str(total or 0)) for apartment_id, total in rows}


def get_apartment_ledger(apartment_id: int, session: Session) -> dict:
    """Credit sales and receipts of one apartment with running balance (oldest first)."""
    apartment = _get_apartment(session, apartment_id)
    movements = session.query(Transaction).filter(
        Transaction.apartment_id == apartment.id,
        Transaction.type.in_([TransactionType.CREDIT_SALE, TransactionType.PAYMENT_RECEIPT])
    ).order_by(Transaction.date.asc(), Transaction.id.asc()).all()

    balance = ZERO
    lines = []
    for tx in movements:
        if tx.type == TransactionType.CREDIT_SALE:
            balance += tx.amount
        else:
            balance -= tx.amount
        line = serialize_transaction(tx)
        line['balance'] = str(balance)
        lines.append(line)

    return {
        'apartment_id': apartment.id,
        'number': apartment.number,
        'occupancy_label': apartment.occupancy_label,
        'movements': lines,
        'balance': str(balance),
    }


def link_receipt_to_bank(transaction_id: int, bank_account_id: int, session: Session) -> BankMovement:
    """
    Create the bank deposit for a payment receipt registered without one.

    Raises:
        NotFoundError: receipt or bank account not found
        BusinessLogicError: not a receipt, or already linked
    """
    try:
        transaction = get_transaction(transaction_id, session)

        if transaction.type != TransactionType.PAYMENT_RECEIPT:
            raise BusinessLogicError("Solo se pueden vincular recibos de pago")

        if transaction.bank_movement is not None:
            raise BusinessLogicError("Este recibo ya está vinculado a un movimiento bancario")

        bank_account = session.get(BankAccount, bank_account_id)
        if not bank_account:
            raise NotFoundError("La cuenta bancaria no fue encontrada")

        apartment_number = transaction.apartment.number if transaction.apartment else 'N/A'
        movement = BankMovement(
            type=MovementType.INCOME,
            amount=transaction.amount,
            date=transaction.date,
            description=f"Pago Apto {apartment_number} - {transaction.description or 'Recibo de pago'}",
            reference=transaction.reference,
            bank_account_id=bank_account.id,
            transaction_id=transaction.id
        )
        session.add(movement)
        session.commit()
        return movement

    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[TX] Error al vincular recibo {transaction_id}")
        raise StoreError("Error al vincular el recibo") from e


def list_unlinked_receipts(session: Session) -> List[Transaction]:
    """Payment receipts without a bank movement, newest first."""
    linked = select(BankMovement.transaction_id).where(BankMovement.transaction_id.isnot(None))
    return session.query(Transaction).filter(
        Transaction.type == TransactionType.PAYMENT_RECEIPT,
        Transaction.id.notin_(linked)
    ).order_by(Transaction.date.desc()).all()


def serialize_transaction(tx: Transaction) -> dict:
    return {
        'id': tx.id,
        'type': tx.type.value,
        'amount': str(tx.amount),
        'date': tx.date.isoformat() if tx.date else None,
        'category': tx.category.value if tx.category else None,
        'description': tx.description,
        'reference': tx.reference,
        'payment_method': tx.payment_method,
        'notes': tx.notes,
        'credit_status': tx.credit_status.value if tx.credit_status else None,
        'paid_amount': str(tx.paid_amount) if tx.paid_amount is not None else None,
        'payment_classification': tx.payment_classification.value if tx.payment_classification else None,
        'common_expense_amount': str(tx.common_expense_amount) if tx.common_expense_amount is not None else None,
        'reserve_fund_amount': str(tx.reserve_fund_amount) if tx.reserve_fund_amount is not None else None,
        'apartment_id': tx.apartment_id,
        'apartment_number': tx.apartment.number if tx.apartment else None,
        'bank_movement_id': tx.bank_movement.id if tx.bank_movement else None,
    }


def serialize_allocation(result: AllocationResult) -> dict:
    return {
        'payment': serialize_transaction(result.payment),
        'allocations': [
            {
                'obligation_id': a.obligation_id,
                'applied': str(a.applied),
                'paid_amount': str(a.paid_amount),
                'credit_status': a.credit_status.value,
            }
            for a in result.allocations
        ],
        'allocated': str(result.allocated),
        'unallocated': str(result.unallocated),
        'credit_balance_id': result.credit_balance.id if result.credit_balance is not None else None,
    }
