"""Bank account model."""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from admin_edificios.database import Base


class BankAccount(Base):
    """Bank account (cuenta bancaria) of the building."""

    __tablename__ = 'bank_account'

    id = Column(Integer, primary_key=True, autoincrement=True)
    bank = Column(String(100), nullable=False)
    account_type = Column(String(50), nullable=False)
    account_number = Column(String(50), nullable=False)
    holder = Column(String(200), nullable=True)
    opening_balance = Column(Numeric(12, 2), nullable=False, default=0, server_default='0')
    active = Column(Boolean, nullable=False, default=True, server_default='1')
    is_default = Column(Boolean, nullable=False, default=False, server_default='0')
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    movements = relationship(
        'BankMovement',
        back_populates='bank_account',
        cascade='all, delete-orphan',
        passive_deletes=True
    )

    def __repr__(self):
        return f"<BankAccount(id={self.id}, bank='{self.bank}', number='{self.account_number}')>"
