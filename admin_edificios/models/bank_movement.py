"""Bank movement model."""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, Boolean, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from admin_edificios.database import Base
from admin_edificios.models.transaction import PaymentClassification
import enum


class MovementType(enum.Enum):
    """Bank movement direction."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class BankMovement(Base):
    """Bank movement (movimiento bancario), optionally linked to a payment receipt."""

    __tablename__ = 'bank_movement'

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(Enum(MovementType, name='movement_type'), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    description = Column(Text, nullable=False)
    reference = Column(String(100), nullable=True)
    document_number = Column(String(100), nullable=True)
    attachment_url = Column(String(500), nullable=True)
    classification = Column(Enum(PaymentClassification, name='movement_classification'), nullable=True)
    reconciled = Column(Boolean, nullable=False, default=False, server_default='0')

    bank_account_id = Column(
        Integer,
        ForeignKey('bank_account.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    transaction_id = Column(
        Integer,
        ForeignKey('transaction.id', ondelete='SET NULL'),
        nullable=True,
        unique=True
    )
    service_provider_id = Column(
        Integer,
        ForeignKey('service_provider.id', ondelete='SET NULL'),
        nullable=True,
        index=True
    )
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    bank_account = relationship('BankAccount', back_populates='movements')
    transaction = relationship('Transaction', back_populates='bank_movement')
    service_provider = relationship('ServiceProvider', back_populates='bank_movements')

    def __repr__(self):
        return f"<BankMovement(id={self.id}, type={self.type.value}, amount={self.amount})>"
