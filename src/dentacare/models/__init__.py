"""Models package - SQLAlchemy ORM models."""
from .appointment import Appointment, Treatment
from .audit import AuditLog
from .clinic import Clinic, ClinicFeatureToggle
from .document import DocumentAuditTrail, PatientDocument, WorkflowNotification
from .form import DigitalForm, FormResponse
from .inventory import InventoryAlert, InventoryCategory, InventoryItem, InventoryTransaction
from .patient import Patient
from .payment import Invoice, PaymentProof
from .queue import QueueEntry
from .sharing import BranchGroupMember, BranchSharingGroup, DataSharingAudit
from .treatment_record import TreatmentRecord
from .user import User

__all__ = [
    "Appointment",
    "AuditLog",
    "BranchGroupMember",
    "BranchSharingGroup",
    "Clinic",
    "ClinicFeatureToggle",
    "DataSharingAudit",
    "DigitalForm",
    "DocumentAuditTrail",
    "FormResponse",
    "InventoryAlert",
    "InventoryCategory",
    "InventoryItem",
    "InventoryTransaction",
    "Invoice",
    "Patient",
    "PatientDocument",
    "PaymentProof",
    "QueueEntry",
    "Treatment",
    "TreatmentRecord",
    "User",
    "WorkflowNotification",
]
