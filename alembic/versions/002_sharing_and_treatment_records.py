"""Branch sharing, treatment records and per-day queue positions.

Revision ID: 002_sharing_and_treatment_records
Revises: 001_initial_schema
Create Date: 2026-10-19

- clinics.sharing_enabled, digital_forms.requires_dentist_signature
- queue.queue_date backfilled from created_at; positions unique per
  clinic and day
- branch_sharing_groups, branch_group_members, data_sharing_audit
- treatment_records
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "002_sharing_and_treatment_records"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "clinics",
        sa.Column("sharing_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    )
    op.add_column(
        "digital_forms",
        sa.Column("requires_dentist_signature", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    )

    # ------------------------------------------------------------------
    # Queue day
    # ------------------------------------------------------------------
    op.add_column("queue", sa.Column("queue_date", sa.Date(), nullable=True, comment="UTC day of check-in"))
    op.execute("UPDATE queue SET queue_date = CAST(created_at AT TIME ZONE 'UTC' AS DATE)")
    op.alter_column("queue", "queue_date", nullable=False)
    op.create_unique_constraint("uq_queue_clinic_day_position", "queue", ["clinic_id", "queue_date", "position"])

    # ------------------------------------------------------------------
    # Branch sharing
    # ------------------------------------------------------------------
    op.create_table(
        "branch_sharing_groups",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "main_clinic_id",
            sa.Integer(),
            sa.ForeignKey("clinics.id", ondelete="CASCADE"),
            nullable=False,
            comment="Head clinic owning the group",
        ),
        sa.Column("group_name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("main_clinic_id", "group_name", name="uq_sharing_group_name"),
    )
    op.create_index("ix_branch_sharing_groups_main_clinic_id", "branch_sharing_groups", ["main_clinic_id"])

    op.create_table(
        "branch_group_members",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("branch_sharing_groups.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_id", "branch_id", name="uq_group_member"),
    )
    op.create_index("ix_branch_group_members_group_id", "branch_group_members", ["group_id"])
    op.create_index("ix_branch_group_members_branch_id", "branch_group_members", ["branch_id"])

    op.create_table(
        "data_sharing_audit",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("source_branch_id", sa.Integer(), sa.ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False),
        sa.Column("target_branch_id", sa.Integer(), sa.ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "sharing_group_id",
            sa.Integer(),
            sa.ForeignKey("branch_sharing_groups.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("data_type", sa.String(50), nullable=False),
        sa.Column("data_id", sa.String(50), nullable=False),
        sa.Column("action_type", sa.String(20), nullable=False, server_default="view"),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sharing_audit_source", "data_sharing_audit", ["source_branch_id", "created_at"])
    op.create_index("ix_sharing_audit_target", "data_sharing_audit", ["target_branch_id", "created_at"])

    # ------------------------------------------------------------------
    # Treatment records
    # ------------------------------------------------------------------
    op.create_table(
        "treatment_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("clinic_id", sa.Integer(), sa.ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False),
        sa.Column("patient_id", sa.Integer(), sa.ForeignKey("patients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("dentist_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("treatment_id", sa.Integer(), sa.ForeignKey("treatments.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "appointment_id",
            sa.Integer(),
            sa.ForeignKey("appointments.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_duration_minutes", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="in_progress"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("complications", sa.Text(), nullable=True),
        sa.Column("follow_up_required", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("follow_up_notes", sa.Text(), nullable=True),
        sa.Column("price_charged", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_treatment_records_clinic_id", "treatment_records", ["clinic_id"])
    op.create_index("ix_treatment_records_patient_id", "treatment_records", ["patient_id"])
    op.create_index("ix_treatment_records_dentist_id", "treatment_records", ["dentist_id"])
    op.create_index("ix_treatment_records_status", "treatment_records", ["status"])
    op.create_index("ix_treatment_records_patient_start", "treatment_records", ["patient_id", "start_time"])


def downgrade() -> None:
    for table in ("treatment_records", "data_sharing_audit", "branch_group_members", "branch_sharing_groups"):
        op.drop_table(table)

    op.drop_constraint("uq_queue_clinic_day_position", "queue", type_="unique")
    op.drop_column("queue", "queue_date")
    op.drop_column("digital_forms", "requires_dentist_signature")
    op.drop_column("clinics", "sharing_enabled")
