"""Resident model."""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Enum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from admin_edificios.database import Base
from admin_edificios.models.apartment import OccupancyType


class Resident(Base):
    """Resident (propietario o inquilino) living in an apartment."""

    __tablename__ = 'resident'

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    national_id = Column(String(30), nullable=True, unique=True)  # cédula
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    type = Column(Enum(OccupancyType, name='resident_type'), nullable=False, default=OccupancyType.TENANT)
    active = Column(Boolean, nullable=False, default=True, server_default='1')
    moved_in_at = Column(DateTime, nullable=False, server_default=func.now())
    moved_out_at = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    apartment_id = Column(Integer, ForeignKey('apartment.id', ondelete='SET NULL'), nullable=True, index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    apartment = relationship('Apartment', back_populates='residents')

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Resident(id={self.id}, name='{self.full_name}', apartment_id={self.apartment_id})>"
