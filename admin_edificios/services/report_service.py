"""
Report service - monthly cuenta corriente report (informe mensual).

Provides:
- Monthly report per apartment (saldo anterior, pagos, cargos, saldo actual)
- Bank summary by fund (gastos comunes / fondo de reserva)
- Accumulated report for a date range
- Expense analysis by service provider
- Report notices (avisos) and footer configuration
- Dashboard figures
"""
import calendar
import logging
import re
from datetime import datetime, date, time
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from flask import current_app, has_app_context
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admin_edificios.exceptions import BusinessLogicError, NotFoundError, StoreError, ValidationError
from admin_edificios.models import (
    Apartment, OccupancyType, Transaction, TransactionType, TransactionCategory, CreditStatus,
    PaymentClassification, BankAccount, BankMovement, MovementType,
    ReportNotice, ReportSetting, ServiceProvider, ServiceType
)
from admin_edificios.services.bank_service import account_balance
from admin_edificios.services.transaction_service import serialize_transaction
from admin_edificios.utils.parsing import parse_bool, parse_enum, require_text

logger = logging.getLogger(__name__)

ZERO = Decimal('0')

FOOTER_KEY = 'pie_pagina_informe'
FOOTER_DEFAULT = 'Sistema de Administración de Edificios'


def get_month_range(month: int, year: int) -> Tuple[datetime, datetime]:
    """First instant and last millisecond of a month."""
    if not 1 <= month <= 12:
        raise ValidationError(f"Mes inválido: {month}")
    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime(year, month, 1),
        datetime(year, month, last_day, 23, 59, 59, 999000)
    )


def _natural_key(number: str):
    """'2' < '10' < '10B' (numeric-aware comparison of apartment numbers)."""
    return [(0, int(part), '') if part.isdigit() else (1, 0, part.lower())
            for part in re.split(r'(\d+)', number) if part]


def _receipt_split(receipt: Transaction) -> Tuple[Decimal, Decimal]:
    """
    (gastos comunes, fondo de reserva) portion of a receipt.

    Classified receipts go entirely to their fund. Older unclassified receipts
    use their per-fund amounts, or count as gastos comunes when they have none.
    """
    if receipt.payment_classification == PaymentClassification.COMMON_EXPENSES:
        return receipt.amount, ZERO
    if receipt.payment_classification == PaymentClassification.RESERVE_FUND:
        return ZERO, receipt.amount

    common = receipt.common_expense_amount or ZERO
    reserve = receipt.reserve_fund_amount or ZERO
    if not common and not reserve:
        common = receipt.amount
    return common, reserve


def get_monthly_report(month: int, year: int, session: Session) -> dict:
    """
    Build the monthly report.

    Returns:
        dict with:
        - date: end of the month
        - apartments: per apartment previous_balance, month_payments,
          month_common_expenses, month_reserve_fund, current_balance
        - bank_summary: income/expense per fund and total bank balance
          at the end of the month (active accounts)
        - expense_detail: bank expenses of the month sorted by date
        - totals: column totals of apartments
        - notices: notices of the month ordered by `order`
    """
    month_start, month_end = get_month_range(month, year)

    apartments = session.query(Apartment).all()
    transactions = session.query(Transaction).filter(
        Transaction.apartment_id.isnot(None),
        Transaction.type.in_([TransactionType.CREDIT_SALE, TransactionType.PAYMENT_RECEIPT]),
        Transaction.date <= month_end
    ).all()

    by_apartment: Dict[int, List[Transaction]] = {}
    for tx in transactions:
        by_apartment.setdefault(tx.apartment_id, []).append(tx)

    rows = []
    for apartment in apartments:
        previous = ZERO
        payments = ZERO
        common = ZERO
        reserve = ZERO

        for tx in by_apartment.get(apartment.id, []):
            if tx.date < month_start:
                if tx.type == TransactionType.CREDIT_SALE:
                    previous += tx.amount
                else:
                    previous -= tx.amount
                continue

            if tx.type == TransactionType.PAYMENT_RECEIPT:
                payments += tx.amount
            elif tx.category == TransactionCategory.COMMON_EXPENSES:
                common += tx.amount
            elif tx.category == TransactionCategory.RESERVE_FUND:
                reserve += tx.amount

        rows.append({
            'apartment_id': apartment.id,
            'number': apartment.number,
            'floor': apartment.floor,
            'occupancy_type': apartment.occupancy_type.value,
            'occupancy_label': apartment.occupancy_label,
            'contact_first_name': apartment.contact_first_name,
            'contact_last_name': apartment.contact_last_name,
            'contact_phone': apartment.contact_phone,
            'previous_balance': previous,
            'month_payments': payments,
            'month_common_expenses': common,
            'month_reserve_fund': reserve,
            'current_balance': previous + common + reserve - payments,
        })

    rows.sort(key=lambda r: (_natural_key(r['number']), r['occupancy_label']))

    # Bank summary: only receipts that reached the bank count as income
    receipts = session.query(Transaction).join(
        BankMovement, BankMovement.transaction_id == Transaction.id
    ).filter(
        Transaction.type == TransactionType.PAYMENT_RECEIPT,
        Transaction.date >= month_start,
        Transaction.date <= month_end
    ).all()

    income_common = ZERO
    income_reserve = ZERO
    for receipt in receipts:
        common, reserve = _receipt_split(receipt)
        income_common += common
        income_reserve += reserve

    expenses = session.query(BankMovement).filter(
        BankMovement.type == MovementType.EXPENSE,
        BankMovement.date >= month_start,
        BankMovement.date <= month_end
    ).order_by(BankMovement.date.asc(), BankMovement.id.asc()).all()

    expense_common = ZERO
    expense_reserve = ZERO
    expense_detail = []
    for movement in expenses:
        if movement.classification == PaymentClassification.COMMON_EXPENSES:
            expense_common += movement.amount
        elif movement.classification == PaymentClassification.RESERVE_FUND:
            expense_reserve += movement.amount

        expense_detail.append({
            'date': movement.date,
            'description': movement.description or 'Sin descripción',
            'classification': movement.classification.value if movement.classification else 'SIN_CLASIFICAR',
            'amount': movement.amount,
            'bank': movement.bank_account.bank if movement.bank_account else 'N/A',
        })

    total_bank_balance = ZERO
    for account in session.query(BankAccount).filter(BankAccount.active.is_(True)).all():
        total_bank_balance += account_balance(account, session, until=month_end)

    totals = {
        'previous_balance': sum((r['previous_balance'] for r in rows), ZERO),
        'month_payments': sum((r['month_payments'] for r in rows), ZERO),
        'month_common_expenses': sum((r['month_common_expenses'] for r in rows), ZERO),
        'month_reserve_fund': sum((r['month_reserve_fund'] for r in rows), ZERO),
        'current_balance': sum((r['current_balance'] for r in rows), ZERO),
    }

    return {
        'month': month,
        'year': year,
        'date': month_end,
        'apartments': rows,
        'bank_summary': {
            'income_common_expenses': income_common,
            'income_reserve_fund': income_reserve,
            'expense_common_expenses': expense_common,
            'expense_reserve_fund': expense_reserve,
            'total_bank_balance': total_bank_balance,
        },
        'expense_detail': expense_detail,
        'totals': totals,
        'notices': [serialize_notice(n) for n in list_notices(month, year, session)],
    }


def get_accumulated_report(start: date, end: date, session: Session) -> dict:
    """
    Receipts, bank expenses and balance by fund over a date range.

    The range covers `start` 00:00 through `end` 23:59:59.999.
    """
    range_start = datetime.combine(start if not isinstance(start, datetime) else start.date(), time.min)
    range_end = datetime.combine(end if not isinstance(end, datetime) else end.date(), time(23, 59, 59, 999000))
    if range_start > range_end:
        raise ValidationError("La fecha de inicio debe ser anterior a la fecha de fin")

    receipts = session.query(Transaction).filter(
        Transaction.type == TransactionType.PAYMENT_RECEIPT,
        Transaction.date >= range_start,
        Transaction.date <= range_end
    ).all()

    receipts_common = ZERO
    receipts_reserve = ZERO
    for receipt in receipts:
        common, reserve = _receipt_split(receipt)
        receipts_common += common
        receipts_reserve += reserve

    expenses = session.query(BankMovement).filter(
        BankMovement.type == MovementType.EXPENSE,
        BankMovement.date >= range_start,
        BankMovement.date <= range_end
    ).all()

    expenses_common = sum(
        (m.amount for m in expenses if m.classification == PaymentClassification.COMMON_EXPENSES), ZERO
    )
    expenses_reserve = sum(
        (m.amount for m in expenses if m.classification == PaymentClassification.RESERVE_FUND), ZERO
    )

    receipts_total = receipts_common + receipts_reserve
    expenses_total = expenses_common + expenses_reserve

    return {
        'start': range_start,
        'end': range_end,
        'receipts': {
            'common_expenses': receipts_common,
            'reserve_fund': receipts_reserve,
            'total': receipts_total,
        },
        'expenses': {
            'common_expenses': expenses_common,
            'reserve_fund': expenses_reserve,
            'total': expenses_total,
        },
        'balance': {
            'common_expenses': receipts_common - expenses_common,
            'reserve_fund': receipts_reserve - expenses_reserve,
            'total': receipts_total - expenses_total,
        },
    }


# ============ ANÁLISIS DE EGRESOS ============

SERVICE_TYPE_COLORS = {
    ServiceType.UTE: 'default',
    ServiceType.OSE: 'default',
    ServiceType.GAS: 'default',
    ServiceType.SANITATION_FEE: 'default',
    ServiceType.ELEVATOR: 'destructive',
    ServiceType.SECURITY: 'destructive',
    ServiceType.CLEANING: 'secondary',
    ServiceType.GARDENER: 'secondary',
    ServiceType.FUMIGATION: 'secondary',
}
NO_PROVIDER_LABEL = 'Sin servicio'

_FUND_ALIASES = {
    'GASTO_COMUN': PaymentClassification.COMMON_EXPENSES,
    'FONDO_RESERVA': PaymentClassification.RESERVE_FUND,
}


def _analysis_fund(value) -> Optional[PaymentClassification]:
    """None means both funds."""
    if value is None or value == '':
        return None
    if isinstance(value, PaymentClassification):
        return value
    key = str(value).strip().upper()
    if key in ('AMBOS', 'BOTH'):
        return None
    if key in _FUND_ALIASES:
        return _FUND_ALIASES[key]
    return parse_enum(PaymentClassification, key, 'clasificación')


def get_expense_analysis(month: int, year: int, classification=None,
                         service_provider_id: Optional[int] = None,
                         session: Session = None) -> dict:
    """
    Bank expenses of a month grouped by service provider.

    Args:
        classification: COMMON_EXPENSES, RESERVE_FUND, or None / 'AMBOS' for both funds
        service_provider_id: restrict to a single provider

    Returns:
        dict with:
        - items: one group per provider (expenses without provider under
          'Sin servicio'), largest total first, each with its details
        - totals: total amount, total count and amount per fund
    """
    month_start, month_end = get_month_range(month, year)
    fund = _analysis_fund(classification)

    filters = [
        BankMovement.type == MovementType.EXPENSE,
        BankMovement.date >= month_start,
        BankMovement.date <= month_end,
    ]
    if fund is not None:
        filters.append(BankMovement.classification == fund)
    if service_provider_id is not None:
        filters.append(BankMovement.service_provider_id == service_provider_id)

    groups = session.query(
        BankMovement.service_provider_id,
        func.count(BankMovement.id),
        func.sum(BankMovement.amount)
    ).filter(*filters).group_by(BankMovement.service_provider_id).all()

    movements = session.query(BankMovement).filter(*filters).order_by(
        BankMovement.date.asc(), BankMovement.id.asc()
    ).all()

    details: Dict[Optional[int], List[dict]] = {}
    amount_common = ZERO
    amount_reserve = ZERO
    for movement in movements:
        if movement.classification == PaymentClassification.COMMON_EXPENSES:
            amount_common += movement.amount
        elif movement.classification == PaymentClassification.RESERVE_FUND:
            amount_reserve += movement.amount
        details.setdefault(movement.service_provider_id, []).append({
            'id': movement.id,
            'date': movement.date,
            'description': movement.description or 'Sin descripción',
            'classification': movement.classification.value if movement.classification else 'SIN_CLASIFICAR',
            'amount': movement.amount,
            'bank': movement.bank_account.bank if movement.bank_account else 'N/A',
        })

    items = []
    for provider_id, count, total in groups:
        provider = session.get(ServiceProvider, provider_id) if provider_id is not None else None
        items.append({
            'service_provider_id': provider_id,
            'service_provider_name': provider.name if provider else NO_PROVIDER_LABEL,
            'service_type': provider.type.value if provider else None,
            'color': SERVICE_TYPE_COLORS.get(provider.type, 'outline') if provider else 'outline',
            'count': count,
            'total': Decimal(str(total or 0)),
            'details': details.get(provider_id, []),
        })
    items.sort(key=lambda i: (-i['total'], i['service_provider_name']))

    logger.info(f"[REPORT] Análisis de egresos {month}/{year}: {len(items)} grupos, {len(movements)} egresos")

    return {
        'month': month,
        'year': year,
        'classification': fund.value if fund else 'AMBOS',
        'service_provider_id': service_provider_id,
        'items': items,
        'totals': {
            'total_amount': sum((i['total'] for i in items), ZERO),
            'total_count': sum(i['count'] for i in items),
            'common_expenses_amount': amount_common,
            'reserve_fund_amount': amount_reserve,
        },
    }


# ============ AVISOS ============

def list_notices(month: int, year: int, session: Session) -> List[ReportNotice]:
    return session.query(ReportNotice).filter(
        ReportNotice.month == month,
        ReportNotice.year == year
    ).order_by(ReportNotice.order.asc(), ReportNotice.id.asc()).all()


def get_notice(notice_id: int, session: Session) -> ReportNotice:
    notice = session.get(ReportNotice, notice_id)
    if not notice:
        raise NotFoundError("El aviso no fue encontrado")
    return notice


def create_notice(text: str, month: int, year: int, session: Session) -> ReportNotice:
    """Append a notice at the end of the month's list (order = max + 1)."""
    try:
        text = require_text(text, 'texto')
        get_month_range(month, year)

        max_order = session.query(func.max(ReportNotice.order)).filter(
            ReportNotice.month == month,
            ReportNotice.year == year
        ).scalar()
        notice = ReportNotice(
            text=text,
            order=(max_order if max_order is not None else -1) + 1,
            month=month,
            year=year,
            active=True
        )
        session.add(notice)
        session.commit()
        return notice

    except BusinessLogicError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("[REPORT] Error al crear aviso")
        raise StoreError("Error al crear el aviso") from e


def update_notice(notice_id: int, data: dict, session: Session) -> ReportNotice:
    try:
        notice = get_notice(notice_id, session)
        if 'text' in data:
            notice.text = require_text(data.get('text'), 'texto')
        if 'active' in data:
            notice.active = parse_bool(data.get('active'), default=True)
        session.commit()
        return notice
    except (BusinessLogicError, NotFoundError):
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[REPORT] Error al actualizar aviso {notice_id}")
        raise StoreError("Error al actualizar el aviso") from e


def delete_notice(notice_id: int, session: Session) -> None:
    try:
        notice = get_notice(notice_id, session)
        session.delete(notice)
        session.commit()
    except NotFoundError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[REPORT] Error al eliminar aviso {notice_id}")
        raise StoreError("Error al eliminar el aviso") from e


def reorder_notices(items: List[dict], session: Session) -> None:
    """Apply [{'id': .., 'order': ..}, ...] in a single transaction."""
    try:
        for item in items:
            notice = get_notice(int(item['id']), session)
            notice.order = int(item['order'])
        session.commit()
    except NotFoundError:
        session.rollback()
        raise
    except (KeyError, TypeError, ValueError) as e:
        session.rollback()
        raise ValidationError("Formato de orden inválido") from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("[REPORT] Error al reordenar avisos")
        raise StoreError("Error al reordenar los avisos") from e


# ============ CONFIGURACIÓN ============

def _footer_default() -> str:
    if has_app_context():
        return current_app.config.get('REPORT_FOOTER_DEFAULT', FOOTER_DEFAULT)
    return FOOTER_DEFAULT


def get_setting(key: str, session: Session) -> Optional[str]:
    setting = session.query(ReportSetting).filter(ReportSetting.key == key).first()
    return setting.value if setting else None


def set_setting(key: str, value: str, session: Session) -> str:
    try:
        setting = session.query(ReportSetting).filter(ReportSetting.key == key).first()
        if setting:
            setting.value = value
        else:
            session.add(ReportSetting(key=key, value=value))
        session.commit()
        return value
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[REPORT] Error al guardar configuración '{key}'")
        raise StoreError("Error al guardar la configuración del informe") from e


def get_report_footer(session: Session) -> str:
    value = get_setting(FOOTER_KEY, session)
    return value if value is not None else _footer_default()


def update_report_footer(value: str, session: Session) -> str:
    return set_setting(FOOTER_KEY, value if value is not None else '', session)


# ============ DASHBOARD ============

def get_dashboard_data(session: Session) -> dict:
    """Headline figures for the home screen."""
    apartments = session.query(Apartment).all()
    owners = [a for a in apartments if a.occupancy_type == OccupancyType.OWNER]
    tenants = [a for a in apartments if a.occupancy_type == OccupancyType.TENANT]

    numbers_owner = {a.number for a in owners}
    numbers_tenant = {a.number for a in tenants}

    def _sum_type(*types):
        value = session.query(func.sum(Transaction.amount)).filter(Transaction.type.in_(types)).scalar()
        return Decimal(str(value or 0))

    income = _sum_type(TransactionType.INCOME, TransactionType.PAYMENT_RECEIPT)
    expense = _sum_type(TransactionType.EXPENSE)

    pending_credit = ZERO
    for credit in session.query(Transaction).filter(
        Transaction.type == TransactionType.CREDIT_SALE,
        Transaction.credit_status != CreditStatus.PAID
    ).all():
        pending_credit += credit.amount - (credit.paid_amount or ZERO)

    recent = session.query(Transaction).order_by(
        Transaction.date.desc(), Transaction.id.desc()
    ).limit(10).all()

    return {
        'total_units': len(numbers_owner | numbers_tenant),
        'total_records': len(apartments),
        'owners': len(owners),
        'tenants': len(tenants),
        'units_with_both': len(numbers_owner & numbers_tenant),
        'owner_fees': sum(((a.common_expenses or ZERO) + (a.reserve_fund or ZERO) for a in owners), ZERO),
        'tenant_fees': sum(((a.common_expenses or ZERO) + (a.reserve_fund or ZERO) for a in tenants), ZERO),
        'income': income,
        'expense': expense,
        'balance': income - expense,
        'pending_credit': pending_credit,
        'recent_transactions': [serialize_transaction(tx) for tx in recent],
    }


def serialize_notice(notice: ReportNotice) -> dict:
    return {
        'id': notice.id,
        'text': notice.text,
        'order': notice.order,
        'month': notice.month,
        'year': notice.year,
        'active': notice.active,
    }
