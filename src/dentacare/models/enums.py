"""Shared Enums for the application.

Defines enum types used across models and schemas. Values are stored as
plain strings in the database so they compare equal to the enum members.
"""
from enum import Enum


class UserRole(str, Enum):
    """User role enum for authorization.

    Attributes:
        SUPER_ADMIN: Platform operator, sees every clinic
        CLINIC_ADMIN: Manages one clinic and its branches
        DENTIST: Treats patients, sees own appointments
        STAFF: Front-desk and assistant duties
        RECEPTIONIST: Front-desk duties
        PATIENT: Patient portal access to own records
    """
    SUPER_ADMIN = "super_admin"
    CLINIC_ADMIN = "clinic_admin"
    DENTIST = "dentist"
    STAFF = "staff"
    RECEPTIONIST = "receptionist"
    PATIENT = "patient"

    @classmethod
    def staff_roles(cls) -> tuple["UserRole", ...]:
        """Roles that operate the clinic (everyone except patients)."""
        return (cls.SUPER_ADMIN, cls.CLINIC_ADMIN, cls.DENTIST, cls.STAFF, cls.RECEPTIONIST)

    @classmethod
    def admin_roles(cls) -> tuple["UserRole", ...]:
        return (cls.SUPER_ADMIN, cls.CLINIC_ADMIN)


class SubscriptionPackage(str, Enum):
    CORE = "core"
    GROWTH = "growth"
    PREMIUM = "premium"


class AppointmentStatus(str, Enum):
    BOOKED = "booked"
    CHECKED_IN = "checked_in"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class BookingType(str, Enum):
    ONLINE = "online"
    WALK_IN = "walk_in"
    EMERGENCY = "emergency"
    VIRTUAL = "virtual"


class QueuePriority(str, Enum):
    """Queue priority; declaration order is the serving order."""
    EMERGENCY = "emergency"
    SCHEDULED = "scheduled"
    WALK_IN = "walk_in"

    @property
    def rank(self) -> int:
        return list(QueuePriority).index(self)


class QueueStatus(str, Enum):
    WAITING = "waiting"
    CALLED = "called"
    SKIPPED = "skipped"
    COMPLETED = "completed"


class WalkInUrgency(str, Enum):
    NORMAL = "normal"
    URGENT = "urgent"
    EMERGENCY = "emergency"


class VerificationStatus(str, Enum):
    """Review state for patient documents and form responses."""
    PENDING = "pending_verification"
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_CORRECTION = "needs_correction"

    @classmethod
    def reviewable(cls) -> tuple["VerificationStatus", ...]:
        return (cls.PENDING, cls.NEEDS_CORRECTION)


class DocumentType(str, Enum):
    CONSENT_FORM = "consent_form"
    INSURANCE = "insurance"
    LAB_RESULT = "lab_result"
    XRAY = "xray"
    OTHER = "other"


class FormFieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SELECT = "select"
    DATE = "date"
    EMAIL = "email"
    PHONE = "phone"
    SIGNATURE = "signature"
    NUMBER = "number"


class PaymentStatus(str, Enum):
    PAID = "paid"
    PARTIAL = "partial"
    UNPAID = "unpaid"


class PaymentProofStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class InventoryTransactionType(str, Enum):
    IN = "in"
    OUT = "out"
    ADJUSTMENT = "adjustment"
    USAGE = "usage"


class InventoryAlertType(str, Enum):
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
    EXPIRING = "expiring"


class QRCodeType(str, Enum):
    DAILY = "daily"
    APPOINTMENT = "appointment"
    STAFF_TIME_IN = "staff_time_in"


class ReminderWindow(str, Enum):
    DAY_BEFORE = "24h"
    HOUR_BEFORE = "1h"


class AIRequestType(str, Enum):
    FORM_AUTOFILL = "form_autofill"
    TREATMENT_DRAFT = "treatment_draft"
    INVOICE_DRAFT = "invoice_draft"
    INSURANCE_EXTRACT = "insurance_extract"
    DOCUMENT_ANALYZE = "document_analyze"
    QUEUE_OPTIMIZE = "queue_optimize"
    REMINDER_DRAFT = "reminder_draft"


class TreatmentRecordStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SharedDataType(str, Enum):
    """Record kinds a branch can read from another branch of its sharing group."""
    PATIENT = "patient"
    TREATMENT_RECORD = "treatment_record"
