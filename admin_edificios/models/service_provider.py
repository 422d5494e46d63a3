"""Service provider model."""
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from admin_edificios.database import Base
import enum


class ServiceType(enum.Enum):
    """Trade of a service provider."""
    ELECTRICIAN = "ELECTRICIAN"
    PLUMBER = "PLUMBER"
    SANITARY = "SANITARY"
    LOCKSMITH = "LOCKSMITH"
    PAINTER = "PAINTER"
    CARPENTER = "CARPENTER"
    BRICKLAYER = "BRICKLAYER"
    GARDENER = "GARDENER"
    CLEANING = "CLEANING"
    SECURITY = "SECURITY"
    FUMIGATION = "FUMIGATION"
    ELEVATOR = "ELEVATOR"
    GLAZIER = "GLAZIER"
    BLACKSMITH = "BLACKSMITH"
    AIR_CONDITIONING = "AIR_CONDITIONING"
    GAS = "GAS"
    UTE = "UTE"
    OSE = "OSE"
    SANITATION_FEE = "SANITATION_FEE"
    OTHER = "OTHER"


SERVICE_TYPE_LABELS = {
    ServiceType.ELECTRICIAN: 'Electricista',
    ServiceType.PLUMBER: 'Plomero',
    ServiceType.SANITARY: 'Sanitario',
    ServiceType.LOCKSMITH: 'Cerrajero',
    ServiceType.PAINTER: 'Pintor',
    ServiceType.CARPENTER: 'Carpintero',
    ServiceType.BRICKLAYER: 'Albañil',
    ServiceType.GARDENER: 'Jardinero',
    ServiceType.CLEANING: 'Limpieza',
    ServiceType.SECURITY: 'Seguridad',
    ServiceType.FUMIGATION: 'Fumigación',
    ServiceType.ELEVATOR: 'Ascensor',
    ServiceType.GLAZIER: 'Vidriería',
    ServiceType.BLACKSMITH: 'Herrería',
    ServiceType.AIR_CONDITIONING: 'Aire Acondicionado',
    ServiceType.GAS: 'Gas',
    ServiceType.UTE: 'UTE (Electricidad)',
    ServiceType.OSE: 'OSE (Agua)',
    ServiceType.SANITATION_FEE: 'Tarifa de Saneamiento',
    ServiceType.OTHER: 'Otro',
}


class ServiceProvider(Base):
    """Service provider contact (servicio)."""

    __tablename__ = 'service_provider'

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(Enum(ServiceType, name='service_type'), nullable=False)
    name = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    active = Column(Boolean, nullable=False, default=True, server_default='1')
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    bank_movements = relationship('BankMovement', back_populates='service_provider', passive_deletes=True)

    @property
    def type_label(self):
        return SERVICE_TYPE_LABELS.get(self.type, '')

    def __repr__(self):
        return f"<ServiceProvider(id={self.id}, type={self.type.value}, name='{self.name}')>"
