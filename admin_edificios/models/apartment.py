"""Apartment model."""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Text, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from admin_edificios.database import Base
import enum


class OccupancyType(enum.Enum):
    """Who the cuenta corriente of the unit belongs to."""
    OWNER = "OWNER"
    TENANT = "TENANT"


OCCUPANCY_LABELS = {
    OccupancyType.OWNER: 'Propietario',
    OccupancyType.TENANT: 'Inquilino',
}


class Apartment(Base):
    """Apartment (unidad). One row per unit and occupancy type."""

    __tablename__ = 'apartment'
    __table_args__ = (
        UniqueConstraint('number', 'occupancy_type', name='uq_apartment_number_occupancy'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    number = Column(String(20), nullable=False)
    floor = Column(Integer, nullable=True)
    share = Column(Numeric(7, 4), nullable=False, default=0, server_default='0')  # alícuota
    common_expenses = Column(Numeric(12, 2), nullable=False, default=0, server_default='0')
    reserve_fund = Column(Numeric(12, 2), nullable=False, default=0, server_default='0')
    occupancy_type = Column(
        Enum(OccupancyType, name='occupancy_type'),
        nullable=False,
        default=OccupancyType.OWNER
    )
    contact_first_name = Column(String(100), nullable=True)
    contact_last_name = Column(String(100), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    contact_email = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    residents = relationship('Resident', back_populates='apartment', passive_deletes=True)
    transactions = relationship('Transaction', back_populates='apartment', passive_deletes=True)

    @property
    def occupancy_label(self):
        return OCCUPANCY_LABELS.get(self.occupancy_type, '')

    @property
    def contact_full_name(self):
        parts = [self.contact_first_name, self.contact_last_name]
        return ' '.join(p for p in parts if p) or None

    def __repr__(self):
        return f"<Apartment(id={self.id}, number='{self.number}', occupancy={self.occupancy_type.value})>"
