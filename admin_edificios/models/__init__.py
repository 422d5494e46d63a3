"""Models package - exports all SQLAlchemy models."""
from admin_edificios.models.apartment import Apartment, OccupancyType, OCCUPANCY_LABELS
from admin_edificios.models.resident import Resident
from admin_edificios.models.service_provider import ServiceProvider, ServiceType, SERVICE_TYPE_LABELS
from admin_edificios.models.transaction import (
    Transaction, TransactionType, TransactionCategory, CreditStatus,
    PaymentClassification, PaymentMethod, CLASSIFICATION_LABELS, PAYMENT_METHOD_LABELS,
    normalize_payment_method
)
from admin_edificios.models.bank_account import BankAccount
from admin_edificios.models.bank_movement import BankMovement, MovementType
from admin_edificios.models.log_entry import (
    LogEntry, LogEntryType, LogEntryStatus, LOG_TYPE_LABELS, LOG_STATUS_LABELS
)
from admin_edificios.models.report import ReportNotice, ReportSetting

__all__ = [
    'Apartment', 'OccupancyType', 'OCCUPANCY_LABELS',
    'Resident',
    'ServiceProvider', 'ServiceType', 'SERVICE_TYPE_LABELS',
    'Transaction', 'TransactionType', 'TransactionCategory', 'CreditStatus',
    'PaymentClassification', 'PaymentMethod', 'CLASSIFICATION_LABELS', 'PAYMENT_METHOD_LABELS',
    'normalize_payment_method',
    'BankAccount', 'BankMovement', 'MovementType',
    'LogEntry', 'LogEntryType', 'LogEntryStatus', 'LOG_TYPE_LABELS', 'LOG_STATUS_LABELS',
    'ReportNotice', 'ReportSetting',
]
