"""Transaction model (movimientos de la cuenta corriente y caja)."""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.sql import func
from admin_edificios.database import Base
import enum


class TransactionType(enum.Enum):
    """Transaction type enum."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    CREDIT_SALE = "CREDIT_SALE"            # cargo a la cuenta corriente (obligación)
    PAYMENT_RECEIPT = "PAYMENT_RECEIPT"    # recibo de pago
    CREDIT_BALANCE = "CREDIT_BALANCE"      # saldo a favor no aplicado


class TransactionCategory(enum.Enum):
    """Transaction category enum."""
    COMMON_EXPENSES = "COMMON_EXPENSES"
    RESERVE_FUND = "RESERVE_FUND"
    MAINTENANCE = "MAINTENANCE"
    SERVICES = "SERVICES"
    ADMINISTRATION = "ADMINISTRATION"
    REPAIRS = "REPAIRS"
    CLEANING = "CLEANING"
    SECURITY = "SECURITY"
    OTHER = "OTHER"


class CreditStatus(enum.Enum):
    """Settlement status of a credit sale."""
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class PaymentClassification(enum.Enum):
    """Fund a payment receipt (or bank expense) belongs to."""
    COMMON_EXPENSES = "COMMON_EXPENSES"
    RESERVE_FUND = "RESERVE_FUND"


CLASSIFICATION_LABELS = {
    PaymentClassification.COMMON_EXPENSES: 'Gasto Común',
    PaymentClassification.RESERVE_FUND: 'Fondo de Reserva',
}


class PaymentMethod(enum.Enum):
    """Payment method enum."""
    CASH = "CASH"
    TRANSFER = "TRANSFER"
    CARD = "CARD"
    CHECK = "CHECK"
    OTHER = "OTHER"


PAYMENT_METHOD_LABELS = {
    'CASH': 'Efectivo',
    'TRANSFER': 'Transferencia',
    'CARD': 'Tarjeta',
    'CHECK': 'Cheque',
    'OTHER': 'Otro',
}


def normalize_payment_method(value) -> str:
    """
    Normalize payment method value to string for DB storage.

    Args:
        value: Can be None, PaymentMethod enum, or string

    Returns:
        str: one of the PaymentMethod values

    Raises:
        ValueError: If value is invalid
    """
    # Default to CASH if None
    if value is None or value == '':
        return PaymentMethod.CASH.value

    # If it's already a PaymentMethod enum, extract the value
    if isinstance(value, PaymentMethod):
        return value.value

    normalized = str(value).upper().strip()
    if normalized in PaymentMethod.__members__:
        return normalized

    raise ValueError(f"Método de pago inválido: {value}")


class Transaction(Base):
    """Transaction (transacción): income, expense, credit sale or payment receipt."""

    __tablename__ = 'transaction'

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(Enum(TransactionType, name='transaction_type'), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    category = Column(Enum(TransactionCategory, name='transaction_category'), nullable=True)
    description = Column(Text, nullable=True)
    reference = Column(String(100), nullable=True)
    payment_method = Column(String(20), nullable=True, default='CASH')
    notes = Column(Text, nullable=True)

    # Credit sales only
    credit_status = Column(Enum(CreditStatus, name='credit_status'), nullable=True, index=True)
    paid_amount = Column(Numeric(12, 2), nullable=True, default=0)

    # Payment receipts only
    payment_classification = Column(Enum(PaymentClassification, name='payment_classification'), nullable=True)
    common_expense_amount = Column(Numeric(12, 2), nullable=True)
    reserve_fund_amount = Column(Numeric(12, 2), nullable=True)

    apartment_id = Column(Integer, ForeignKey('apartment.id', ondelete='SET NULL'), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    apartment = relationship('Apartment', back_populates='transactions')
    bank_movement = relationship('BankMovement', back_populates='transaction', uselist=False)

    @hybrid_property
    def amount_due(self):
        """Amount still owed on a credit sale: amount - paid_amount."""
        return (self.amount or 0) - (self.paid_amount or 0)

    def __repr__(self):
        return f"<Transaction(id={self.id}, type={self.type.value}, amount={self.amount})>"
