"""Initial dental clinic schema.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

Creates every table of the clinic platform:
- Tenancy: clinics, clinic_feature_toggles, users
- Care: patients, treatments, appointments, queue
- Paperwork: digital_forms, form_responses, patient_documents,
  document_audit_trail, workflow_notifications
- Billing: invoices, payment_proofs
- Stock: inventory_categories, inventory_items, inventory_transactions,
  inventory_alerts
- audit_logs
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def _clinic_fk() -> sa.Column:
    return sa.Column("clinic_id", sa.Integer(), sa.ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False)


def _user_fk(name: str) -> sa.Column:
    return sa.Column(name, sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


def upgrade() -> None:
    # ------------------------------------------------------------------
    # Tenancy
    # ------------------------------------------------------------------
    op.create_table(
        "clinics",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False, comment="Clinic or branch display name"),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column(
            "parent_clinic_id",
            sa.Integer(),
            sa.ForeignKey("clinics.id", ondelete="CASCADE"),
            nullable=True,
            comment="Head clinic of this branch; NULL for a head clinic",
        ),
        sa.Column("subscription_package", sa.String(20), nullable=False, server_default="core"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true"), comment="Soft delete flag"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_clinics_name", "clinics", ["name"])
    op.create_index("ix_clinics_parent_clinic_id", "clinics", ["parent_clinic_id"])
    op.create_index("ix_clinics_is_active", "clinics", ["is_active"])
    op.create_index("ix_clinics_parent_active", "clinics", ["parent_clinic_id", "is_active"])

    op.create_table(
        "clinic_feature_toggles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column("feature_name", sa.String(100), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("clinic_id", "feature_name", name="uq_clinic_feature"),
    )
    op.create_index("ix_clinic_feature_toggles_clinic_id", "clinic_feature_toggles", ["clinic_id"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False, comment="Login email address"),
        sa.Column("password_hash", sa.String(255), nullable=True, comment="pbkdf2_sha256$iterations$salt$hash"),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="staff"),
        sa.Column("clinic_id", sa.Integer(), sa.ForeignKey("clinics.id", ondelete="CASCADE"), nullable=True),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
            comment="Active status - inactive users cannot authenticate",
        ),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_clinic_id", "users", ["clinic_id"])
    op.create_index("ix_users_is_active", "users", ["is_active"])
    op.create_index("ix_users_clinic_role", "users", ["clinic_id", "role"])

    # ------------------------------------------------------------------
    # Care
    # ------------------------------------------------------------------
    op.create_table(
        "patients",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("contact_number", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("emergency_contact", sa.String(255), nullable=True),
        sa.Column("medical_history", sa.Text(), nullable=True),
        sa.Column("allergies", sa.Text(), nullable=True),
        _user_fk("user_id"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", name="uq_patients_user_id"),
    )
    op.create_index("ix_patients_clinic_id", "patients", ["clinic_id"])
    op.create_index("ix_patients_full_name", "patients", ["full_name"])
    op.create_index("ix_patients_contact_number", "patients", ["contact_number"])
    op.create_index("ix_patients_clinic_contact", "patients", ["clinic_id", "contact_number"])

    op.create_table(
        "treatments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("default_price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("default_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_treatments_clinic_id", "treatments", ["clinic_id"])

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column("patient_id", sa.Integer(), sa.ForeignKey("patients.id", ondelete="CASCADE"), nullable=False),
        _user_fk("dentist_id"),
        sa.Column("treatment_id", sa.Integer(), sa.ForeignKey("treatments.id", ondelete="SET NULL"), nullable=True),
        sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("status", sa.String(20), nullable=False, server_default="booked"),
        sa.Column("booking_type", sa.String(20), nullable=False, server_default="online"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("qr_code", sa.Text(), nullable=True),
        sa.Column("actual_start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_end_time", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_appointments_clinic_id", "appointments", ["clinic_id"])
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_dentist_id", "appointments", ["dentist_id"])
    op.create_index("ix_appointments_scheduled_time", "appointments", ["scheduled_time"])
    op.create_index("ix_appointments_status", "appointments", ["status"])
    op.create_index("ix_appointments_clinic_time", "appointments", ["clinic_id", "scheduled_time"])
    op.create_index("ix_appointments_dentist_time", "appointments", ["dentist_id", "scheduled_time"])

    op.create_table(
        "queue",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column("appointment_id", sa.Integer(), sa.ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False, server_default="scheduled"),
        sa.Column("status", sa.String(20), nullable=False, server_default="waiting"),
        sa.Column("manual_order", sa.Integer(), nullable=True),
        sa.Column("override_reason", sa.Text(), nullable=True),
        sa.Column("estimated_wait_minutes", sa.Integer(), nullable=True),
        sa.Column("treatment_duration_override", sa.Integer(), nullable=True),
        _created_at(),
        sa.Column("called_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("appointment_id", name="uq_queue_appointment_id"),
    )
    op.create_index("ix_queue_clinic_id", "queue", ["clinic_id"])
    op.create_index("ix_queue_status", "queue", ["status"])
    op.create_index("ix_queue_clinic_status", "queue", ["clinic_id", "status"])
    op.create_index("ix_queue_clinic_created", "queue", ["clinic_id", "created_at"])

    # ------------------------------------------------------------------
    # Paperwork
    # ------------------------------------------------------------------
    op.create_table(
        "digital_forms",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("form_type", sa.String(50), nullable=False, server_default="intake"),
        sa.Column("form_fields", sa.JSON(), nullable=False),
        sa.Column("requires_signature", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("requires_verification", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_digital_forms_clinic_id", "digital_forms", ["clinic_id"])

    op.create_table(
        "form_responses",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column("form_id", sa.Integer(), sa.ForeignKey("digital_forms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("form_version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("patient_id", sa.Integer(), sa.ForeignKey("patients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("appointment_id", sa.Integer(), sa.ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True),
        sa.Column("responses", sa.JSON(), nullable=False),
        sa.Column("signature_data", sa.Text(), nullable=True),
        sa.Column("signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("requires_verification", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("verification_status", sa.String(30), nullable=False, server_default="pending_verification"),
        _user_fk("verified_by"),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("requires_dentist_signature", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("dentist_signature_data", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_form_responses_clinic_id", "form_responses", ["clinic_id"])
    op.create_index("ix_form_responses_form_id", "form_responses", ["form_id"])
    op.create_index("ix_form_responses_patient_id", "form_responses", ["patient_id"])
    op.create_index("ix_form_responses_verification_status", "form_responses", ["verification_status"])
    op.create_index("ix_form_responses_patient_status", "form_responses", ["patient_id", "verification_status"])

    op.create_table(
        "patient_documents",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column("patient_id", sa.Integer(), sa.ForeignKey("patients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("document_type", sa.String(30), nullable=False, server_default="other"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False, comment="Storage-relative path"),
        sa.Column("file_url", sa.String(500), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("content_hash", sa.String(64), nullable=True),
        sa.Column("verification_status", sa.String(30), nullable=False, server_default="pending_verification"),
        _user_fk("verified_by"),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("requires_dentist_signature", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("dentist_signature_data", sa.Text(), nullable=True),
        _user_fk("uploaded_by"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_patient_documents_clinic_id", "patient_documents", ["clinic_id"])
    op.create_index("ix_patient_documents_patient_id", "patient_documents", ["patient_id"])
    op.create_index("ix_patient_documents_verification_status", "patient_documents", ["verification_status"])
    op.create_index("ix_patient_documents_clinic_status", "patient_documents", ["clinic_id", "verification_status"])

    op.create_table(
        "document_audit_trail",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "document_id", sa.Integer(), sa.ForeignKey("patient_documents.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("action", sa.String(50), nullable=False),
        _user_fk("performed_by"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("old_status", sa.String(30), nullable=True),
        sa.Column("new_status", sa.String(30), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_document_audit_trail_document_id", "document_audit_trail", ["document_id"])

    op.create_table(
        "workflow_notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column(
            "recipient_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("notification_type", sa.String(50), nullable=False),
        sa.Column("related_entity_type", sa.String(50), nullable=True),
        sa.Column("related_entity_id", sa.Integer(), nullable=True),
        sa.Column("dedupe_key", sa.String(100), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("dedupe_key", name="uq_workflow_notifications_dedupe_key"),
    )
    op.create_index("ix_workflow_notifications_clinic_id", "workflow_notifications", ["clinic_id"])
    op.create_index("ix_workflow_notifications_recipient_user_id", "workflow_notifications", ["recipient_user_id"])
    op.create_index(
        "ix_workflow_notifications_recipient_read", "workflow_notifications", ["recipient_user_id", "is_read"]
    )

    # ------------------------------------------------------------------
    # Billing
    # ------------------------------------------------------------------
    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column("patient_id", sa.Integer(), sa.ForeignKey("patients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("appointment_id", sa.Integer(), sa.ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True),
        sa.Column("invoice_number", sa.String(30), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("amount_paid", sa.Float(), nullable=False, server_default="0"),
        sa.Column("balance_due", sa.Float(), nullable=False),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="unpaid"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
    )
    op.create_index("ix_invoices_clinic_id", "invoices", ["clinic_id"])
    op.create_index("ix_invoices_patient_id", "invoices", ["patient_id"])
    op.create_index("ix_invoices_appointment_id", "invoices", ["appointment_id"])
    op.create_index("ix_invoices_payment_status", "invoices", ["payment_status"])

    op.create_table(
        "payment_proofs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column("invoice_id", sa.Integer(), sa.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False),
        sa.Column("patient_id", sa.Integer(), sa.ForeignKey("patients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("payment_method", sa.String(50), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("proof_file_path", sa.String(500), nullable=False),
        sa.Column("proof_file_url", sa.String(500), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        _user_fk("verified_by"),
        sa.Column("verification_notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payment_proofs_clinic_id", "payment_proofs", ["clinic_id"])
    op.create_index("ix_payment_proofs_invoice_id", "payment_proofs", ["invoice_id"])
    op.create_index("ix_payment_proofs_patient_id", "payment_proofs", ["patient_id"])
    op.create_index("ix_payment_proofs_status", "payment_proofs", ["status"])
    op.create_index("ix_payment_proofs_clinic_status", "payment_proofs", ["clinic_id", "status"])

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------
    op.create_table(
        "inventory_categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_inventory_categories_clinic_id", "inventory_categories", ["clinic_id"])

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("inventory_categories.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("current_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("minimum_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit_cost", sa.Float(), nullable=False, server_default="0"),
        sa.Column("unit_type", sa.String(30), nullable=False, server_default="unit"),
        sa.Column("supplier", sa.String(255), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_inventory_items_clinic_id", "inventory_items", ["clinic_id"])
    op.create_index("ix_inventory_items_sku", "inventory_items", ["sku"])
    op.create_index("ix_inventory_items_clinic_active", "inventory_items", ["clinic_id", "is_active"])

    op.create_table(
        "inventory_transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("transaction_type", sa.String(20), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_cost", sa.Float(), nullable=True),
        sa.Column("total_cost", sa.Float(), nullable=True),
        sa.Column("reference_id", sa.String(100), nullable=True),
        _user_fk("created_by"),
        sa.Column("notes", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_inventory_transactions_clinic_id", "inventory_transactions", ["clinic_id"])
    op.create_index("ix_inventory_transactions_item_id", "inventory_transactions", ["item_id"])
    op.create_index("ix_inventory_transactions_reference_id", "inventory_transactions", ["reference_id"])

    op.create_table(
        "inventory_alerts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        _clinic_fk(),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("inventory_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("alert_type", sa.String(20), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_resolved", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_inventory_alerts_clinic_id", "inventory_alerts", ["clinic_id"])
    op.create_index("ix_inventory_alerts_item_id", "inventory_alerts", ["item_id"])
    op.create_index("ix_inventory_alerts_is_resolved", "inventory_alerts", ["is_resolved"])

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("clinic_id", sa.Integer(), sa.ForeignKey("clinics.id", ondelete="CASCADE"), nullable=True),
        _user_fk("user_id"),
        sa.Column("patient_id", sa.Integer(), sa.ForeignKey("patients.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action_type", sa.String(50), nullable=False),
        sa.Column("action_description", sa.Text(), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=True),
        sa.Column("entity_id", sa.String(50), nullable=True),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_clinic_id", "audit_logs", ["clinic_id"])
    op.create_index("ix_audit_logs_action_type", "audit_logs", ["action_type"])
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])


def downgrade() -> None:
    for table in (
        "audit_logs",
        "inventory_alerts",
        "inventory_transactions",
        "inventory_items",
        "inventory_categories",
        "payment_proofs",
        "invoices",
        "workflow_notifications",
        "document_audit_trail",
        "patient_documents",
        "form_responses",
        "digital_forms",
        "queue",
        "appointments",
        "treatments",
        "patients",
        "users",
        "clinic_feature_toggles",
        "clinics",
    ):
        op.drop_table(table)
