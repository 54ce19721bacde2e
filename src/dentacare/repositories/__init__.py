"""Repositories package - Data access layer."""
from .appointment_repository import AppointmentRepository, TreatmentRepository
from .audit_repository import AuditRepository
from .clinic_repository import ClinicRepository
from .document_repository import DocumentRepository
from .form_repository import FormRepository
from .inventory_repository import InventoryRepository
from .notification_repository import NotificationRepository
from .patient_repository import PatientRepository
from .payment_repository import InvoiceRepository, PaymentProofRepository
from .queue_repository import QueueRepository
from .user_repository import UserRepository

__all__ = [
    "AppointmentRepository",
    "AuditRepository",
    "ClinicRepository",
    "DocumentRepository",
    "FormRepository",
    "InventoryRepository",
    "InvoiceRepository",
    "NotificationRepository",
    "PatientRepository",
    "PaymentProofRepository",
    "QueueRepository",
    "TreatmentRepository",
    "UserRepository",
]
