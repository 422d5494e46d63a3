import itertools
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from admin_edificios import create_app, database
from admin_edificios.database import Base
from admin_edificios.exceptions import NotFoundError
from admin_edificios.models import (
    Apartment, OccupancyType, BankAccount, Transaction, TransactionType,
    TransactionCategory, CreditStatus
)


@pytest.fixture(scope='function')
def app():
    """Create application instance for testing (fresh in-memory database)."""
    app = create_app('config.TestingConfig')
    with app.app_context():
        yield app
    database.db_session.remove()
    Base.metadata.drop_all(bind=database.engine)
    database.engine.dispose()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session bound to the test app."""
    session = database.get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def apartment(session):
    """Apartment 101, owner, 1000 gastos comunes + 200 fondo de reserva."""
    apartment = Apartment(
        number='101',
        floor=1,
        common_expenses=Decimal('1000'),
        reserve_fund=Decimal('200'),
        occupancy_type=OccupancyType.OWNER,
        contact_first_name='Ana',
        contact_last_name='Pérez',
        contact_phone='+598 99 123 456'
    )
    session.add(apartment)
    session.commit()
    return apartment


@pytest.fixture(scope='function')
def tenant_apartment(session):
    """Apartment 202, tenant, 800 gastos comunes, no fondo de reserva."""
    apartment = Apartment(
        number='202',
        floor=2,
        common_expenses=Decimal('800'),
        reserve_fund=Decimal('0'),
        occupancy_type=OccupancyType.TENANT
    )
    session.add(apartment)
    session.commit()
    return apartment


@pytest.fixture(scope='function')
def bank_account(session):
    account = BankAccount(
        bank='BROU',
        account_type='Caja de Ahorro',
        account_number='001-123456',
        holder='Edificio Test',
        opening_balance=Decimal('5000'),
        active=True,
        is_default=True
    )
    session.add(account)
    session.commit()
    return account


@pytest.fixture(scope='function')
def make_credit_sale(session):
    """Factory for credit sales: make_credit_sale(apartment, amount, date, paid=0)."""
    def _make(apartment, amount, date, paid='0', category=TransactionCategory.COMMON_EXPENSES):
        paid = Decimal(str(paid))
        amount = Decimal(str(amount))
        if paid == 0:
            status = CreditStatus.PENDING
        elif paid >= amount:
            status = CreditStatus.PAID
        else:
            status = CreditStatus.PARTIAL
        credit_sale = Transaction(
            type=TransactionType.CREDIT_SALE,
            amount=amount,
            date=date,
            category=category,
            description=f"Cargo {date:%d/%m}",
            credit_status=status,
            paid_amount=paid,
            apartment_id=apartment.id
        )
        session.add(credit_sale)
        session.commit()
        return credit_sale
    return _make


class InMemoryLedgerStore:
    """Ledger store kept in a dict, for exercising the allocator without a database."""

    def __init__(self):
        self.records = {}
        self.calls = []
        self._ids = itertools.count(1)
        self.fail_on_update = None
        self.fail_exception = None

    def add_obligation(self, apartment_id, amount, date, paid='0', status=None, record_id=None):
        amount = Decimal(str(amount))
        paid = Decimal(str(paid))
        if status is None:
            status = CreditStatus.PENDING if paid == 0 else (
                CreditStatus.PAID if paid >= amount else CreditStatus.PARTIAL
            )
        record = SimpleNamespace(
            id=record_id if record_id is not None else next(self._ids),
            type=TransactionType.CREDIT_SALE,
            apartment_id=apartment_id,
            amount=amount,
            paid_amount=paid,
            credit_status=status,
            date=date
        )
        self.records[record.id] = record
        return record

    def create(self, fields):
        self.calls.append(('create', fields.get('type')))
        record = SimpleNamespace(id=next(self._ids), **fields)
        self.records[record.id] = record
        return record

    def update(self, record_id, fields):
        self.calls.append(('update', record_id))
        if self.fail_on_update is not None and self.fail_on_update(record_id):
            raise self.fail_exception
        record = self.records.get(record_id)
        if record is None:
            raise NotFoundError("El registro no fue encontrado")
        for key, value in fields.items():
            setattr(record, key, value)
        return record

    def find_many(self, apartment_id, statuses):
        statuses = set(statuses)
        # Insertion order on purpose: the allocator must sort by itself
        return [
            r for r in self.records.values()
            if r.type == TransactionType.CREDIT_SALE
            and r.apartment_id == apartment_id
            and r.credit_status in statuses
        ]

    def payments(self):
        return [r for r in self.records.values() if r.type == TransactionType.PAYMENT_RECEIPT]


@pytest.fixture(scope='function')
def ledger_store():
    return InMemoryLedgerStore()


@pytest.fixture
def day():
    """day(n) -> datetime of January n, 2026."""
    return lambda n: datetime(2026, 1, n, 10, 0)
