"""Integration tests for monthly/accumulated reports, expense analysis, notices and dashboard."""
from datetime import date, datetime
from decimal import Decimal

import pytest

from admin_edificios.exceptions import NotFoundError, ValidationError
from admin_edificios.models import (
    Apartment, OccupancyType, BankMovement, MovementType, PaymentClassification, TransactionCategory,
    ServiceProvider, ServiceType
)
from admin_edificios.services import report_service, transaction_service


@pytest.fixture
def january(session, apartment, bank_account, make_credit_sale):
    """December debt, January charges, one deposited receipt and one bank expense."""
    make_credit_sale(apartment, '1000', datetime(2025, 12, 1))
    make_credit_sale(apartment, '1000', datetime(2026, 1, 1))
    make_credit_sale(apartment, '200', datetime(2026, 1, 1), category=TransactionCategory.RESERVE_FUND)
    transaction_service.register_payment_receipt({
        'apartment_id': apartment.id,
        'amount': '600',
        'date': '2026-01-10',
        'bank_account_id': bank_account.id,
    }, session)
    session.add(BankMovement(
        type=MovementType.EXPENSE,
        amount=Decimal('300'),
        date=datetime(2026, 1, 15),
        description='Limpieza',
        classification=PaymentClassification.COMMON_EXPENSES,
        bank_account_id=bank_account.id
    ))
    session.commit()
    return apartment


class TestMonthlyReport:
    def test_apartment_row(self, session, january):
        report = report_service.get_monthly_report(1, 2026, session)

        row = report['apartments'][0]
        assert row['number'] == '101'
        assert row['previous_balance'] == Decimal('1000')
        assert row['month_payments'] == Decimal('600')
        assert row['month_common_expenses'] == Decimal('1000')
        assert row['month_reserve_fund'] == Decimal('200')
        assert row['current_balance'] == Decimal('1600')
        assert report['totals']['current_balance'] == Decimal('1600')
        assert report['date'] == datetime(2026, 1, 31, 23, 59, 59, 999000)

    def test_bank_summary(self, session, january):
        summary = report_service.get_monthly_report(1, 2026, session)['bank_summary']

        assert summary['income_common_expenses'] == Decimal('600')
        assert summary['income_reserve_fund'] == Decimal('0')
        assert summary['expense_common_expenses'] == Decimal('300')
        assert summary['total_bank_balance'] == Decimal('5300')

    def test_expense_detail(self, session, january):
        detail = report_service.get_monthly_report(1, 2026, session)['expense_detail']

        assert len(detail) == 1
        assert detail[0]['description'] == 'Limpieza'
        assert detail[0]['classification'] == 'COMMON_EXPENSES'
        assert detail[0]['bank'] == 'BROU'

    def test_receipt_without_bank_movement_is_not_bank_income(self, session, apartment):
        transaction_service.register_payment_receipt(
            {'apartment_id': apartment.id, 'amount': '100', 'date': '2026-01-10'}, session
        )

        report = report_service.get_monthly_report(1, 2026, session)

        assert report['bank_summary']['income_common_expenses'] == Decimal('0')
        assert report['apartments'][0]['month_payments'] == Decimal('100')

    def test_apartments_sorted_naturally(self, session):
        for number in ('10', '2', '1B'):
            session.add(Apartment(number=number, occupancy_type=OccupancyType.OWNER))
        session.commit()

        numbers = [r['number'] for r in report_service.get_monthly_report(1, 2026, session)['apartments']]

        assert numbers == ['1B', '2', '10']

    def test_invalid_month(self, session):
        with pytest.raises(ValidationError):
            report_service.get_monthly_report(13, 2026, session)


class TestAccumulatedReport:
    def test_totals_by_fund(self, session, january):
        transaction_service.register_payment_receipt({
            'apartment_id': january.id,
            'amount': '200',
            'date': '2026-02-03',
            'payment_classification': 'RESERVE_FUND',
        }, session)

        report = report_service.get_accumulated_report(date(2026, 1, 1), date(2026, 2, 28), session)

        assert report['receipts'] == {
            'common_expenses': Decimal('600'), 'reserve_fund': Decimal('200'), 'total': Decimal('800')
        }
        assert report['expenses']['total'] == Decimal('300')
        assert report['balance']['common_expenses'] == Decimal('300')
        assert report['balance']['total'] == Decimal('500')

    def test_end_date_is_inclusive(self, session, apartment):
        transaction_service.register_payment_receipt(
            {'apartment_id': apartment.id, 'amount': '50', 'date': '2026-01-31T22:00:00'}, session
        )

        report = report_service.get_accumulated_report(date(2026, 1, 31), date(2026, 1, 31), session)

        assert report['receipts']['total'] == Decimal('50')

    def test_start_after_end(self, session):
        with pytest.raises(ValidationError):
            report_service.get_accumulated_report(date(2026, 2, 1), date(2026, 1, 1), session)


@pytest.fixture
def expenses(session, bank_account):
    """January expenses: two for UTE, one for a plumber, one without provider."""
    ute = ServiceProvider(type=ServiceType.UTE, name='UTE')
    plumber = ServiceProvider(type=ServiceType.PLUMBER, name='Juan Pérez')
    session.add_all([ute, plumber])
    session.flush()

    def expense(amount, day, classification, provider=None, month=1):
        session.add(BankMovement(
            type=MovementType.EXPENSE,
            amount=Decimal(amount),
            date=datetime(2026, month, day),
            description=f'Egreso {amount}',
            classification=classification,
            bank_account_id=bank_account.id,
            service_provider_id=provider.id if provider else None
        ))

    expense('500', 5, PaymentClassification.COMMON_EXPENSES, ute)
    expense('700', 20, PaymentClassification.COMMON_EXPENSES, ute)
    expense('900', 12, PaymentClassification.RESERVE_FUND, plumber)
    expense('100', 8, PaymentClassification.COMMON_EXPENSES)
    # Other month and an income: both ignored
    expense('50', 1, PaymentClassification.COMMON_EXPENSES, ute, month=2)
    session.add(BankMovement(
        type=MovementType.INCOME, amount=Decimal('999'), date=datetime(2026, 1, 3), description='Depósito',
        bank_account_id=bank_account.id, service_provider_id=None
    ))
    session.commit()
    return {'ute': ute.id, 'plumber': plumber.id}


class TestExpenseAnalysis:
    def test_groups_by_provider(self, session, expenses):
        data = report_service.get_expense_analysis(1, 2026, None, None, session)

        names = [item['service_provider_name'] for item in data['items']]
        assert names == ['UTE', 'Juan Pérez', 'Sin servicio']
        ute = data['items'][0]
        assert ute['count'] == 2
        assert ute['total'] == Decimal('1200')
        assert ute['color'] == 'default'
        assert [d['amount'] for d in ute['details']] == [Decimal('500'), Decimal('700')]
        assert data['items'][1]['color'] == 'outline'
        assert data['items'][2]['service_provider_id'] is None

    def test_totals(self, session, expenses):
        totals = report_service.get_expense_analysis(1, 2026, 'AMBOS', None, session)['totals']

        assert totals['total_amount'] == Decimal('2200')
        assert totals['total_count'] == 4
        assert totals['common_expenses_amount'] == Decimal('1300')
        assert totals['reserve_fund_amount'] == Decimal('900')

    def test_fund_filter(self, session, expenses):
        data = report_service.get_expense_analysis(1, 2026, 'FONDO_RESERVA', None, session)

        assert data['classification'] == 'RESERVE_FUND'
        assert [item['service_provider_name'] for item in data['items']] == ['Juan Pérez']
        assert data['totals']['total_amount'] == Decimal('900')
        assert data['totals']['common_expenses_amount'] == Decimal('0')

        common = report_service.get_expense_analysis(1, 2026, PaymentClassification.COMMON_EXPENSES, None, session)
        assert common['totals']['total_amount'] == Decimal('1300')

    def test_provider_filter(self, session, expenses):
        data = report_service.get_expense_analysis(1, 2026, None, expenses['ute'], session)

        assert len(data['items']) == 1
        assert data['items'][0]['service_provider_id'] == expenses['ute']
        assert data['totals']['total_count'] == 2

    def test_both_filters_without_matches(self, session, expenses):
        data = report_service.get_expense_analysis(1, 2026, 'FONDO_RESERVA', expenses['ute'], session)

        assert data['items'] == []
        assert data['totals']['total_amount'] == Decimal('0')

    def test_invalid_fund(self, session):
        with pytest.raises(ValidationError):
            report_service.get_expense_analysis(1, 2026, 'OTRO', None, session)


class TestNotices:
    def test_notices_are_appended_in_order(self, session):
        first = report_service.create_notice('Corte de agua el martes', 1, 2026, session)
        second = report_service.create_notice('Asamblea el viernes', 1, 2026, session)
        other_month = report_service.create_notice('Fumigación', 2, 2026, session)

        assert (first.order, second.order, other_month.order) == (0, 1, 0)
        assert [n.id for n in report_service.list_notices(1, 2026, session)] == [first.id, second.id]

    def test_reorder(self, session):
        first = report_service.create_notice('A', 1, 2026, session)
        second = report_service.create_notice('B', 1, 2026, session)

        report_service.reorder_notices([
            {'id': first.id, 'order': 1},
            {'id': second.id, 'order': 0},
        ], session)

        assert [n.text for n in report_service.list_notices(1, 2026, session)] == ['B', 'A']

    def test_reorder_with_bad_payload(self, session):
        notice = report_service.create_notice('A', 1, 2026, session)
        with pytest.raises(ValidationError):
            report_service.reorder_notices([{'id': notice.id}], session)

    def test_update_and_delete(self, session):
        notice = report_service.create_notice('A', 1, 2026, session)

        report_service.update_notice(notice.id, {'text': 'B', 'active': False}, session)
        assert notice.text == 'B'
        assert notice.active is False

        notice_id = notice.id
        report_service.delete_notice(notice_id, session)
        with pytest.raises(NotFoundError):
            report_service.get_notice(notice_id, session)

    def test_empty_text_is_rejected(self, session):
        with pytest.raises(ValidationError):
            report_service.create_notice('   ', 1, 2026, session)

    def test_monthly_report_includes_notices(self, session):
        report_service.create_notice('Aviso', 1, 2026, session)

        report = report_service.get_monthly_report(1, 2026, session)

        assert [n['text'] for n in report['notices']] == ['Aviso']


class TestFooterAndDashboard:
    def test_footer_default_and_update(self, session):
        assert report_service.get_report_footer(session) == 'Sistema de Administración de Edificios'

        report_service.update_report_footer('Administración Torre Sur', session)
        report_service.update_report_footer('Administración Torre Norte', session)

        assert report_service.get_report_footer(session) == 'Administración Torre Norte'

    def test_dashboard(self, session, apartment, tenant_apartment, make_credit_sale, day):
        make_credit_sale(apartment, '1000', day(1))
        transaction_service.register_payment_receipt({'apartment_id': apartment.id, 'amount': '400'}, session)

        data = report_service.get_dashboard_data(session)

        assert data['owners'] == 1
        assert data['tenants'] == 1
        assert data['total_units'] == 2
        assert data['owner_fees'] == Decimal('1200')
        assert data['income'] == Decimal('400')
        assert data['pending_credit'] == Decimal('600')
        assert len(data['recent_transactions']) == 2
