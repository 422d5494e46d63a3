"""Integration tests for transactions: credit sales, receipts and monthly charges."""
from datetime import datetime
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from admin_edificios.exceptions import BusinessLogicError, NotFoundError, StoreError, ValidationError
from admin_edificios.models import (
    Transaction, TransactionType, TransactionCategory, CreditStatus, BankMovement, PaymentClassification
)
from admin_edificios.services import transaction_service
from admin_edificios.services.allocation_service import SqlAlchemyLedgerStore


class TestRegisterPaymentReceipt:
    """FIFO allocation through the SQLAlchemy ledger store."""

    def test_receipt_settles_oldest_first(self, session, apartment, make_credit_sale, day):
        older = make_credit_sale(apartment, '100', day(1))
        newer = make_credit_sale(apartment, '50', day(2))

        result = transaction_service.register_payment_receipt({
            'apartment_id': apartment.id,
            'amount': '120',
            'date': '2026-01-10',
            'reference': 'TRF-77',
        }, session)

        session.expire_all()
        assert older.paid_amount == Decimal('100')
        assert older.credit_status == CreditStatus.PAID
        assert newer.paid_amount == Decimal('20')
        assert newer.credit_status == CreditStatus.PARTIAL
        assert result.unallocated == Decimal('0')

        receipt = session.get(Transaction, result.payment.id)
        assert receipt.type == TransactionType.PAYMENT_RECEIPT
        assert receipt.amount == Decimal('120')
        assert receipt.payment_method == 'CASH'
        assert receipt.payment_classification == PaymentClassification.COMMON_EXPENSES
        assert receipt.description == "Recibo de Pago (Gasto Común) - Apto 101 (Propietario) - Ref: TRF-77"

    def test_overpayment_not_tracked_by_default(self, session, apartment, make_credit_sale, day):
        make_credit_sale(apartment, '100', day(1))

        result = transaction_service.register_payment_receipt(
            {'apartment_id': apartment.id, 'amount': '150'}, session
        )

        assert result.unallocated == Decimal('50')
        assert session.query(Transaction).filter_by(type=TransactionType.CREDIT_BALANCE).count() == 0

    def test_overpayment_tracked_when_enabled(self, app, session, apartment, make_credit_sale, day):
        make_credit_sale(apartment, '100', day(1))
        app.config['TRACK_OVERPAYMENT'] = True

        result = transaction_service.register_payment_receipt(
            {'apartment_id': apartment.id, 'amount': '150'}, session
        )

        credit = session.query(Transaction).filter_by(type=TransactionType.CREDIT_BALANCE).one()
        assert credit.amount == Decimal('50')
        assert result.credit_balance.id == credit.id

    def test_reserve_fund_classification(self, session, apartment):
        result = transaction_service.register_payment_receipt({
            'apartment_id': apartment.id,
            'amount': '200',
            'payment_classification': 'RESERVE_FUND',
        }, session)

        assert result.payment.reserve_fund_amount == Decimal('200')
        assert result.payment.common_expense_amount is None

    def test_receipt_with_bank_account_creates_deposit(self, session, apartment, bank_account):
        result = transaction_service.register_payment_receipt({
            'apartment_id': apartment.id,
            'amount': '300',
            'bank_account_id': bank_account.id,
        }, session)

        movement = session.query(BankMovement).one()
        assert movement.transaction_id == result.payment.id
        assert movement.amount == Decimal('300')
        assert movement.bank_account_id == bank_account.id

    @pytest.mark.parametrize('amount', ['0', '-5'])
    def test_rejects_non_positive_amount(self, session, apartment, amount):
        with pytest.raises(ValidationError):
            transaction_service.register_payment_receipt({'apartment_id': apartment.id, 'amount': amount}, session)
        assert session.query(Transaction).count() == 0

    def test_unknown_apartment(self, session):
        with pytest.raises(NotFoundError, match="Apartamento no encontrado"):
            transaction_service.register_payment_receipt({'apartment_id': 999, 'amount': '10'}, session)

    def test_unknown_bank_account_rolls_back(self, session, apartment):
        with pytest.raises(NotFoundError, match="cuenta bancaria"):
            transaction_service.register_payment_receipt(
                {'apartment_id': apartment.id, 'amount': '10', 'bank_account_id': 42}, session
            )
        assert session.query(Transaction).count() == 0

    def test_store_failure_rolls_back_everything(self, session, apartment, make_credit_sale, day):
        first = make_credit_sale(apartment, '100', day(1))
        second_id = make_credit_sale(apartment, '100', day(2)).id
        original_update = SqlAlchemyLedgerStore.update

        def failing_update(store, record_id, fields):
            if record_id == second_id:
                raise StoreError("Error al actualizar la transacción")
            return original_update(store, record_id, fields)

        with patch.object(SqlAlchemyLedgerStore, 'update', failing_update):
            with pytest.raises(StoreError):
                transaction_service.register_payment_receipt(
                    {'apartment_id': apartment.id, 'amount': '150'}, session
                )

        session.expire_all()
        assert first.paid_amount == Decimal('0')
        assert first.credit_status == CreditStatus.PENDING
        assert session.query(Transaction).filter_by(type=TransactionType.PAYMENT_RECEIPT).count() == 0

    def test_database_error_becomes_store_error(self, session, apartment):
        with patch.object(SqlAlchemyLedgerStore, 'find_many', side_effect=OperationalError('SELECT', {}, Exception('db'))):
            with pytest.raises(StoreError):
                transaction_service.register_payment_receipt({'apartment_id': apartment.id, 'amount': '10'}, session)

    def test_same_date_charges_settle_by_id(self, session, apartment, make_credit_sale, day):
        first = make_credit_sale(apartment, '100', day(1))
        second = make_credit_sale(apartment, '100', day(1))
        assert first.id < second.id

        transaction_service.register_payment_receipt(
            {'apartment_id': apartment.id, 'amount': '150', 'date': '2026-01-10'}, session
        )

        session.expire_all()
        assert first.credit_status == CreditStatus.PAID
        assert second.paid_amount == Decimal('50')
        assert second.credit_status == CreditStatus.PARTIAL

    def test_store_update_of_missing_record(self, session):
        with pytest.raises(NotFoundError):
            SqlAlchemyLedgerStore(session).update(9999, {'paid_amount': Decimal('1')})


class TestCreditSalesAndTransactions:
    def test_create_credit_sale_defaults(self, session, apartment):
        credit_sale = transaction_service.create_credit_sale(
            {'apartment_id': apartment.id, 'amount': '1.500,50'}, session
        )

        assert credit_sale.amount == Decimal('1500.50')
        assert credit_sale.credit_status == CreditStatus.PENDING
        assert credit_sale.paid_amount == Decimal('0')
        assert credit_sale.category == TransactionCategory.COMMON_EXPENSES

    def test_create_credit_sale_keeps_notes(self, session, apartment):
        credit_sale = transaction_service.create_credit_sale(
            {'apartment_id': apartment.id, 'amount': '300', 'notes': '  Cuota extraordinaria  '}, session
        )

        session.expire_all()
        assert session.get(Transaction, credit_sale.id).notes == 'Cuota extraordinaria'

    def test_create_transaction_rejects_credit_types(self, session):
        with pytest.raises(ValidationError):
            transaction_service.create_transaction({'type': 'CREDIT_SALE', 'amount': '10'}, session)

    def test_create_expense(self, session):
        expense = transaction_service.create_transaction({
            'type': 'EXPENSE', 'amount': '250', 'category': 'CLEANING', 'payment_method': 'transfer'
        }, session)

        assert expense.type == TransactionType.EXPENSE
        assert expense.payment_method == 'TRANSFER'

    def test_invalid_payment_method(self, session):
        with pytest.raises(ValidationError):
            transaction_service.create_transaction({'type': 'INCOME', 'amount': '5', 'payment_method': 'BITCOIN'}, session)

    def test_update_credit_sale_rederives_status(self, session, apartment, make_credit_sale, day):
        credit_sale = make_credit_sale(apartment, '100', day(1), paid='60')

        transaction_service.update_transaction(credit_sale.id, {'amount': '60'}, session)

        assert credit_sale.credit_status == CreditStatus.PAID

    def test_update_credit_sale_below_paid(self, session, apartment, make_credit_sale, day):
        credit_sale = make_credit_sale(apartment, '100', day(1), paid='60')

        with pytest.raises(ValidationError, match="menor a lo ya pagado"):
            transaction_service.update_transaction(credit_sale.id, {'amount': '50'}, session)

    def test_delete_removes_linked_bank_movement(self, session, apartment, bank_account):
        result = transaction_service.register_payment_receipt(
            {'apartment_id': apartment.id, 'amount': '100', 'bank_account_id': bank_account.id}, session
        )

        transaction_service.delete_transaction(result.payment.id, session)

        assert session.query(BankMovement).count() == 0
        assert session.query(Transaction).count() == 0

    def test_get_missing_transaction(self, session):
        with pytest.raises(NotFoundError, match="Transacción no encontrada"):
            transaction_service.get_transaction(12345, session)


class TestMonthlyCharges:
    def test_generates_both_charges_per_apartment(self, session, apartment, tenant_apartment):
        result = transaction_service.generate_monthly_charges(session, datetime(2026, 1, 5))

        # tenant_apartment has no fondo de reserva
        assert result == {'created': 3, 'month': 'enero de 2026'}
        charges = session.query(Transaction).filter_by(apartment_id=apartment.id).all()
        assert {c.category for c in charges} == {TransactionCategory.COMMON_EXPENSES, TransactionCategory.RESERVE_FUND}
        assert all(c.credit_status == CreditStatus.PENDING for c in charges)
        assert "Gastos Comunes - enero de 2026" in {c.description for c in charges}

    def test_second_run_in_same_month_fails(self, session, apartment):
        transaction_service.generate_monthly_charges(session, datetime(2026, 1, 5))

        with pytest.raises(BusinessLogicError, match="Ya se generaron las transacciones para enero de 2026"):
            transaction_service.generate_monthly_charges(session, datetime(2026, 1, 20))

    def test_next_month_is_independent(self, session, apartment):
        transaction_service.generate_monthly_charges(session, datetime(2026, 1, 5))
        result = transaction_service.generate_monthly_charges(session, datetime(2026, 2, 5))
        assert result['created'] == 2

    def test_no_apartments(self, session):
        with pytest.raises(BusinessLogicError, match="No hay apartamentos registrados"):
            transaction_service.generate_monthly_charges(session)


class TestBalancesAndLinks:
    def test_account_balances(self, session, apartment, tenant_apartment, make_credit_sale, day):
        make_credit_sale(apartment, '1000', day(1))
        make_credit_sale(tenant_apartment, '800', day(1))
        transaction_service.register_payment_receipt({'apartment_id': apartment.id, 'amount': '1200'}, session)

        balances = transaction_service.get_account_balances(session)

        assert balances[apartment.id] == Decimal('-200')
        assert balances[tenant_apartment.id] == Decimal('800')

    def test_apartment_ledger_running_balance(self, session, apartment, make_credit_sale, day):
        make_credit_sale(apartment, '100', day(1))
        transaction_service.register_payment_receipt(
            {'apartment_id': apartment.id, 'amount': '40', 'date': '2026-01-05'}, session
        )

        ledger = transaction_service.get_apartment_ledger(apartment.id, session)

        assert [Decimal(m['balance']) for m in ledger['movements']] == [Decimal('100'), Decimal('60')]
        assert Decimal(ledger['balance']) == Decimal('60')

    def test_link_receipt_to_bank(self, session, apartment, bank_account):
        result = transaction_service.register_payment_receipt({'apartment_id': apartment.id, 'amount': '75'}, session)
        assert [r.id for r in transaction_service.list_unlinked_receipts(session)] == [result.payment.id]

        movement = transaction_service.link_receipt_to_bank(result.payment.id, bank_account.id, session)

        assert movement.description.startswith("Pago Apto 101 - ")
        assert transaction_service.list_unlinked_receipts(session) == []
        with pytest.raises(BusinessLogicError, match="ya está vinculado"):
            transaction_service.link_receipt_to_bank(result.payment.id, bank_account.id, session)

    def test_link_rejects_non_receipts(self, session, apartment, bank_account, make_credit_sale, day):
        credit_sale = make_credit_sale(apartment, '100', day(1))
        with pytest.raises(BusinessLogicError, match="Solo se pueden vincular recibos de pago"):
            transaction_service.link_receipt_to_bank(credit_sale.id, bank_account.id, session)
