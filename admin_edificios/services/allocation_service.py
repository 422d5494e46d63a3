"""
Payment allocation for the cuenta corriente of an apartment.

A payment receipt is applied against the outstanding credit sales
(obligations) of one apartment, oldest first:

- The receipt is stored first, always with the full amount received
- Pending/partial credit sales are visited in FIFO_ORDER (date, then id)
- Each one absorbs min(remaining, owed); status becomes PAID or PARTIAL
- Whatever is left after the last obligation is not allocated
  (optionally recorded as a CREDIT_BALANCE record)

The allocator talks to a LedgerStore instead of the session directly so it can
be exercised against an in-memory store.
"""
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admin_edificios.exceptions import NotFoundError, StoreError
from admin_edificios.models import Transaction, TransactionType, CreditStatus

logger = logging.getLogger(__name__)

# Obligations are always settled oldest first; equal dates fall back to id
FIFO_ORDER = ('date', 'id')

OPEN_STATUSES = (CreditStatus.PENDING, CreditStatus.PARTIAL)

ZERO = Decimal('0')


class LedgerStore(Protocol):
    """Persistence operations the allocator needs."""

    def create(self, fields: Dict[str, Any]) -> Any:
        """Persist a new ledger record and return it with its generated id."""

    def update(self, record_id: int, fields: Dict[str, Any]) -> Any:
        """Update a record by id. Raises NotFoundError if the id does not exist."""

    def find_many(self, apartment_id: int, statuses: Iterable[CreditStatus]) -> List[Any]:
        """Credit sales of the apartment whose status is in `statuses`."""


@dataclass
class Allocation:
    """Portion of a payment applied to one obligation."""
    obligation_id: int
    applied: Decimal
    paid_amount: Decimal
    credit_status: CreditStatus


@dataclass
class AllocationResult:
    """Outcome of apply_payment."""
    payment: Any
    updated_obligations: List[Any] = field(default_factory=list)
    allocations: List[Allocation] = field(default_factory=list)
    unallocated: Decimal = ZERO
    credit_balance: Any = None

    @property
    def allocated(self) -> Decimal:
        return sum((a.applied for a in self.allocations), ZERO)


def to_decimal(value) -> Decimal:
    """Convert a numeric value (or None) to Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def derive_credit_status(paid_amount, amount) -> CreditStatus:
    """
    Status of a credit sale as a function of paid vs. amount.

    PENDING when nothing was paid, PAID once paid reaches amount,
    PARTIAL otherwise.
    """
    paid = to_decimal(paid_amount)
    if paid <= ZERO:
        return CreditStatus.PENDING
    if paid >= to_decimal(amount):
        return CreditStatus.PAID
    return CreditStatus.PARTIAL


def fifo_key(obligation):
    return tuple(getattr(obligation, name) for name in FIFO_ORDER)


def apply_payment(
    store: LedgerStore,
    account_id: int,
    amount,
    date: datetime,
    payment_meta: Optional[Dict[str, Any]] = None,
    track_overpayment: bool = False
) -> AllocationResult:
    """
    Record a payment receipt and allocate it against pending credit sales.

    Args:
        store: LedgerStore used for every read/write
        account_id: Apartment the payment belongs to (not validated here)
        amount: Amount received (validated by the caller)
        date: Date stored on the receipt; not used to select obligations
        payment_meta: Pass-through receipt fields (payment_method, reference,
            notes, description, classification amounts)
        track_overpayment: If True, the unallocated leftover is stored as a
            CREDIT_BALANCE record

    Returns:
        AllocationResult with the payment, the obligations that were updated
        (in allocation order) and the amount left unallocated

    Raises:
        NotFoundError: An obligation disappeared before it could be updated
        StoreError: The store failed; earlier updates of this call are kept
    """
    amount = to_decimal(amount)

    # Step 1: The receipt always carries the full amount
    payment_fields = dict(payment_meta or {})
    payment_fields.update({
        'type': TransactionType.PAYMENT_RECEIPT,
        'apartment_id': account_id,
        'amount': amount,
        'date': date,
    })
    payment = store.create(payment_fields)

    # Step 2: Open obligations, re-sorted here regardless of store ordering
    obligations = sorted(store.find_many(account_id, OPEN_STATUSES), key=fifo_key)

    result = AllocationResult(payment=payment)
    remaining = amount

    # Step 3: Walk the queue until the payment is exhausted
    for obligation in obligations:
        if remaining <= ZERO:
            break

        obligation_amount = to_decimal(obligation.amount)
        paid = to_decimal(obligation.paid_amount)
        owed = obligation_amount - paid
        if owed <= ZERO:
            continue

        applied = min(remaining, owed)
        new_paid = paid + applied
        new_status = CreditStatus.PAID if new_paid >= obligation_amount else CreditStatus.PARTIAL

        updated = store.update(obligation.id, {
            'paid_amount': new_paid,
            'credit_status': new_status,
        })

        result.updated_obligations.append(updated)
        result.allocations.append(Allocation(
            obligation_id=obligation.id,
            applied=applied,
            paid_amount=new_paid,
            credit_status=new_status
        ))
        remaining -= applied

    result.unallocated = remaining if remaining > ZERO else ZERO

    if result.unallocated > ZERO:
        logger.info(
            f"[ALLOCATION] Apto {account_id}: {result.unallocated} sin aplicar "
            f"del recibo {getattr(payment, 'id', None)}"
        )
        if track_overpayment:
            result.credit_balance = store.create({
                'type': TransactionType.CREDIT_BALANCE,
                'apartment_id': account_id,
                'amount': result.unallocated,
                'date': date,
                'description': f"Saldo a favor - Recibo #{getattr(payment, 'id', '')}",
                'reference': payment_fields.get('reference'),
            })

    return result


class SqlAlchemyLedgerStore:
    """LedgerStore backed by the Transaction table of a SQLAlchemy session.

    Writes are flushed, never committed: the caller owns the transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def create(self, fields):
        try:
            record = Transaction(**fields)
            self.session.add(record)
            self.session.flush()
            return record
        except SQLAlchemyError as e:
            logger.error(f"[ALLOCATION] Error creando registro: {e}")
            raise StoreError("Error al crear el recibo de pago") from e

    def update(self, record_id, fields):
        try:
            record = self.session.get(Transaction, record_id)
            if record is None:
                raise NotFoundError("El registro no fue encontrado")
            for key, value in fields.items():
                setattr(record, key, value)
            self.session.flush()
            return record
        except SQLAlchemyError as e:
            logger.error(f"[ALLOCATION] Error actualizando registro {record_id}: {e}")
            raise StoreError("Error al actualizar la transacción") from e

    def find_many(self, apartment_id, statuses):
        try:
            return self.session.query(Transaction).filter(
                Transaction.apartment_id == apartment_id,
                Transaction.type == TransactionType.CREDIT_SALE,
                Transaction.credit_status.in_(list(statuses))
            ).order_by(
                Transaction.date.asc(),
                Transaction.id.asc()
            ).with_for_update().all()
        except SQLAlchemyError as e:
            logger.error(f"[ALLOCATION] Error consultando créditos pendientes: {e}")
            raise StoreError() from e


# Per-apartment locks so two receipts for the same apartment never read the
# same pending snapshot inside this process. One entry per apartment id, so the
# map is bounded by the number of apartments.
_locks: Dict[int, threading.Lock] = {}
_locks_guard = threading.Lock()


@contextmanager
def account_lock(apartment_id: int):
    """Serialize allocation for one apartment."""
    with _locks_guard:
        lock = _locks.setdefault(apartment_id, threading.Lock())
    with lock:
        yield
