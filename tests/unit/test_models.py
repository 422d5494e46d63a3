"""
Unit tests for SQLAlchemy models.
"""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from admin_edificios.models import (
    Apartment, OccupancyType, Resident, ServiceProvider, ServiceType, Transaction, TransactionType,
    CreditStatus, BankMovement, MovementType, normalize_payment_method
)


class TestApartmentModel:
    """Tests for Apartment model."""

    def test_create_apartment(self, session, apartment):
        assert apartment.id is not None
        assert apartment.occupancy_label == 'Propietario'
        assert apartment.contact_full_name == 'Ana Pérez'
        assert apartment.share == Decimal('0')

    def test_same_number_owner_and_tenant(self, session, apartment):
        """Owner and tenant rows of the same unit can coexist."""
        tenant = Apartment(number='101', occupancy_type=OccupancyType.TENANT)
        session.add(tenant)
        session.commit()

        assert tenant.occupancy_label == 'Inquilino'

    def test_number_and_occupancy_unique(self, session, apartment):
        session.add(Apartment(number='101', occupancy_type=OccupancyType.OWNER))

        with pytest.raises(IntegrityError):
            session.commit()

    def test_delete_keeps_transactions(self, session, apartment, make_credit_sale):
        credit_sale = make_credit_sale(apartment, '100', datetime(2026, 1, 1))
        credit_sale_id = credit_sale.id

        session.delete(apartment)
        session.commit()

        assert session.get(Transaction, credit_sale_id).apartment_id is None


class TestTransactionModel:
    """Tests for Transaction model."""

    def test_amount_due(self, apartment, make_credit_sale):
        credit_sale = make_credit_sale(apartment, '100', datetime(2026, 1, 1), paid='30')

        assert credit_sale.amount_due == Decimal('70')
        assert credit_sale.credit_status == CreditStatus.PARTIAL

    @pytest.mark.parametrize('value,expected', [
        (None, 'CASH'),
        ('', 'CASH'),
        ('transfer', 'TRANSFER'),
        (' Check ', 'CHECK'),
    ])
    def test_normalize_payment_method(self, value, expected):
        assert normalize_payment_method(value) == expected

    def test_normalize_payment_method_invalid(self):
        with pytest.raises(ValueError):
            normalize_payment_method('crypto')

    def test_transaction_linked_to_one_movement(self, session, apartment, bank_account):
        receipt = Transaction(
            type=TransactionType.PAYMENT_RECEIPT, amount=Decimal('10'),
            date=datetime(2026, 1, 1), apartment_id=apartment.id
        )
        session.add(receipt)
        session.commit()

        for _ in range(2):
            session.add(BankMovement(
                type=MovementType.INCOME, amount=Decimal('10'), date=datetime(2026, 1, 1),
                description='Depósito', bank_account_id=bank_account.id, transaction_id=receipt.id
            ))

        with pytest.raises(IntegrityError):
            session.commit()


class TestDirectoryModels:
    def test_resident_full_name(self, session, apartment):
        resident = Resident(first_name='Juan', last_name='Rodríguez', apartment_id=apartment.id)
        session.add(resident)
        session.commit()

        assert resident.full_name == 'Juan Rodríguez'
        assert resident.type == OccupancyType.TENANT
        assert resident.moved_in_at is not None

    def test_provider_type_label(self):
        assert ServiceProvider(type=ServiceType.PLUMBER, name='Juan').type_label == 'Plomero'
