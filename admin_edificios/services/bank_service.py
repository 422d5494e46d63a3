"""Bank accounts, bank movements and account statements."""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from admin_edificios.exceptions import BusinessLogicError, NotFoundError, StoreError, ValidationError
from admin_edificios.models import (
    BankAccount, BankMovement, MovementType, PaymentClassification, ServiceProvider, Transaction
)
from admin_edificios.utils.parsing import (
    parse_enum, parse_money, parse_int, parse_bool, parse_datetime, require_text, optional_text
)

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


# ============ CUENTAS BANCARIAS ============

def _clean_account(data: dict, partial: bool = False) -> dict:
    values = {}
    if not partial or 'bank' in data:
        values['bank'] = require_text(data.get('bank'), 'banco')
    if not partial or 'account_type' in data:
        values['account_type'] = require_text(data.get('account_type'), 'tipo de cuenta')
    if not partial or 'account_number' in data:
        values['account_number'] = require_text(data.get('account_number'), 'número de cuenta')
    if 'holder' in data:
        values['holder'] = optional_text(data.get('holder'))
    if not partial or 'opening_balance' in data:
        opening = parse_money(data.get('opening_balance'), 'saldo inicial')
        values['opening_balance'] = opening if opening is not None else ZERO
    if 'active' in data:
        values['active'] = parse_bool(data.get('active'), default=True)
    if 'is_default' in data:
        values['is_default'] = parse_bool(data.get('is_default'))
    return values


def _clear_default(session: Session, keep_id: Optional[int] = None):
    """Only one account can be the default one."""
    query = session.query(BankAccount).filter(BankAccount.is_default.is_(True))
    if keep_id is not None:
        query = query.filter(BankAccount.id != keep_id)
    for account in query.all():
        account.is_default = False


def list_accounts(session: Session, active_only: bool = False) -> List[BankAccount]:
    query = session.query(BankAccount)
    if active_only:
        query = query.filter(BankAccount.active.is_(True))
    return query.order_by(BankAccount.is_default.desc(), BankAccount.bank.asc()).all()


def get_account(account_id: int, session: Session) -> BankAccount:
    account = session.get(BankAccount, account_id)
    if not account:
        raise NotFoundError("La cuenta bancaria no fue encontrada")
    return account


def create_account(data: dict, session: Session) -> BankAccount:
    try:
        values = _clean_account(data)
        if values.get('is_default'):
            _clear_default(session)

        account = BankAccount(**values)
        session.add(account)
        session.commit()
        logger.info(f"[BANK] Cuenta creada: {account.bank} {account.account_number}")
        return account

    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("[BANK] Error al crear cuenta bancaria")
        raise StoreError("Error al crear la cuenta bancaria. Verifica la conexión.") from e


def update_account(account_id: int, data: dict, session: Session) -> BankAccount:
    try:
        account = get_account(account_id, session)
        values = _clean_account(data, partial=True)
        if values.get('is_default'):
            _clear_default(session, keep_id=account.id)

        for key, value in values.items():
            setattr(account, key, value)
        session.commit()
        return account

    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[BANK] Error al actualizar cuenta {account_id}")
        raise StoreError("Error al actualizar la cuenta bancaria") from e


def delete_account(account_id: int, session: Session) -> None:
    """Delete an account together with its movements."""
    try:
        account = get_account(account_id, session)
        session.delete(account)
        session.commit()
    except NotFoundError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[BANK] Error al eliminar cuenta {account_id}")
        raise StoreError("Error al eliminar la cuenta bancaria") from e


def account_balance(account: BankAccount, session: Session, until: Optional[datetime] = None) -> Decimal:
    """Opening balance + income - expenses, optionally up to `until` (inclusive)."""
    query = session.query(BankMovement.type, func.sum(BankMovement.amount)).filter(
        BankMovement.bank_account_id == account.id
    )
    if until is not None:
        query = query.filter(BankMovement.date <= until)
    totals = {row[0]: Decimal(str(row[1] or 0)) for row in query.group_by(BankMovement.type).all()}

    return (
        (account.opening_balance or ZERO)
        + totals.get(MovementType.INCOME, ZERO)
        - totals.get(MovementType.EXPENSE, ZERO)
    )


# ============ MOVIMIENTOS BANCARIOS ============

def _clean_movement(data: dict, session: Session, partial: bool = False) -> dict:
    values = {}
    if not partial or 'type' in data:
        values['type'] = parse_enum(MovementType, data.get('type'), 'tipo', required=True)
    if not partial or 'amount' in data:
        amount = parse_money(data.get('amount'), 'monto', required=True)
        if amount <= ZERO:
            raise ValidationError("El monto debe ser mayor a 0")
        values['amount'] = amount
    if not partial or 'date' in data:
        values['date'] = parse_datetime(data.get('date'), 'fecha') or datetime.now()
    if not partial or 'description' in data:
        values['description'] = require_text(data.get('description'), 'descripción')
    for key in ('reference', 'document_number', 'attachment_url'):
        if key in data:
            values[key] = optional_text(data.get(key))
    if 'classification' in data:
        values['classification'] = parse_enum(PaymentClassification, data.get('classification'), 'clasificación')
    if 'reconciled' in data:
        values['reconciled'] = parse_bool(data.get('reconciled'))
    if not partial or 'bank_account_id' in data:
        account_id = parse_int(data.get('bank_account_id'), 'cuenta bancaria', required=True)
        values['bank_account_id'] = get_account(account_id, session).id
    if 'service_provider_id' in data:
        provider_id = parse_int(data.get('service_provider_id'), 'servicio')
        if provider_id is not None and not session.get(ServiceProvider, provider_id):
            raise NotFoundError("El servicio no fue encontrado")
        values['service_provider_id'] = provider_id
    if 'transaction_id' in data:
        transaction_id = parse_int(data.get('transaction_id'), 'transacción')
        if transaction_id is not None and not session.get(Transaction, transaction_id):
            raise NotFoundError("Transacción no encontrada")
        values['transaction_id'] = transaction_id
    return values


def list_movements(
    session: Session,
    bank_account_id: Optional[int] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> List[BankMovement]:
    """Bank movements, newest first."""
    query = session.query(BankMovement)
    if bank_account_id is not None:
        query = query.filter(BankMovement.bank_account_id == bank_account_id)
    if start is not None:
        query = query.filter(BankMovement.date >= start)
    if end is not None:
        query = query.filter(BankMovement.date <= end)
    return query.order_by(BankMovement.date.desc(), BankMovement.id.desc()).all()


def get_movement(movement_id: int, session: Session) -> BankMovement:
    movement = session.get(BankMovement, movement_id)
    if not movement:
        raise NotFoundError("El movimiento no fue encontrado")
    return movement


def create_movement(data: dict, session: Session) -> BankMovement:
    try:
        movement = BankMovement(**_clean_movement(data, session))
        session.add(movement)
        session.commit()
        logger.info(f"[BANK] Movimiento {movement.type.value} #{movement.id} por {movement.amount}")
        return movement

    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except IntegrityError as e:
        session.rollback()
        raise BusinessLogicError("Esa transacción ya está vinculada a otro movimiento bancario") from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("[BANK] Error al crear movimiento")
        raise StoreError("Error al crear el movimiento bancario.") from e


def update_movement(movement_id: int, data: dict, session: Session) -> BankMovement:
    try:
        movement = get_movement(movement_id, session)
        for key, value in _clean_movement(data, session, partial=True).items():
            setattr(movement, key, value)
        session.commit()
        return movement

    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[BANK] Error al actualizar movimiento {movement_id}")
        raise StoreError("Error al actualizar el movimiento") from e


def delete_movement(movement_id: int, session: Session) -> None:
    try:
        movement = get_movement(movement_id, session)
        session.delete(movement)
        session.commit()
    except NotFoundError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[BANK] Error al eliminar movimiento {movement_id}")
        raise StoreError("Error al eliminar el movimiento") from e


def reconcile_movement(movement_id: int, reconciled: bool, session: Session) -> BankMovement:
    """Mark a movement as reconciled (conciliado) or not."""
    try:
        movement = get_movement(movement_id, session)
        movement.reconciled = bool(reconciled)
        session.commit()
        return movement
    except NotFoundError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[BANK] Error al conciliar movimiento {movement_id}")
        raise StoreError("Error al conciliar el movimiento") from e


def get_account_statement(
    account_id: int,
    session: Session,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None
) -> dict:
    """
    Account statement (estado de cuenta) with running balance.

    The running balance starts at the account opening balance and walks the
    movements of the range in ascending date order.

    Returns:
        dict with 'account', 'movements' (each with 'balance') and 'summary'
        (opening_balance, total_income, total_expense, final_balance)
    """
    account = get_account(account_id, session)

    query = session.query(BankMovement).filter(BankMovement.bank_account_id == account.id)
    if start is not None:
        query = query.filter(BankMovement.date >= start)
    if end is not None:
        query = query.filter(BankMovement.date <= end)
    movements = query.order_by(BankMovement.date.asc(), BankMovement.id.asc()).all()

    opening = account.opening_balance or ZERO
    running = opening
    total_income = ZERO
    total_expense = ZERO
    lines = []

    for movement in movements:
        if movement.type == MovementType.INCOME:
            running += movement.amount
            total_income += movement.amount
        else:
            running -= movement.amount
            total_expense += movement.amount

        lines.append({
            'id': movement.id,
            'type': movement.type.value,
            'amount': movement.amount,
            'date': movement.date,
            'description': movement.description,
            'reference': movement.reference,
            'classification': movement.classification.value if movement.classification else None,
            'balance': running,
        })

    return {
        'account': {
            'id': account.id,
            'bank': account.bank,
            'account_type': account.account_type,
            'account_number': account.account_number,
            'holder': account.holder,
            'opening_balance': opening,
        },
        'movements': lines,
        'summary': {
            'opening_balance': opening,
            'total_income': total_income,
            'total_expense': total_expense,
            'final_balance': opening + total_income - total_expense,
        },
    }


def serialize_account(account: BankAccount, session: Optional[Session] = None) -> dict:
    data = {
        'id': account.id,
        'bank': account.bank,
        'account_type': account.account_type,
        'account_number': account.account_number,
        'holder': account.holder,
        'opening_balance': str(account.opening_balance),
        'active': account.active,
        'is_default': account.is_default,
    }
    if session is not None:
        data['balance'] = str(account_balance(account, session))
    return data


def serialize_movement(movement: BankMovement) -> dict:
    return {
        'id': movement.id,
        'type': movement.type.value,
        'amount': str(movement.amount),
        'date': movement.date.isoformat() if movement.date else None,
        'description': movement.description,
        'reference': movement.reference,
        'document_number': movement.document_number,
        'attachment_url': movement.attachment_url,
        'classification': movement.classification.value if movement.classification else None,
        'reconciled': movement.reconciled,
        'bank_account_id': movement.bank_account_id,
        'transaction_id': movement.transaction_id,
        'service_provider_id': movement.service_provider_id,
        'service_provider_name': movement.service_provider.name if movement.service_provider else None,
    }
