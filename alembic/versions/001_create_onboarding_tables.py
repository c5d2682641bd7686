"""create onboarding tables

Revision ID: 001_create_onboarding_tables
Revises: 
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "001_create_onboarding_tables"
down_revision = None
branch_labels = None
depends_on = None


JSON = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")
NOW = sa.text("CURRENT_TIMESTAMP")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("role", sa.String(length=50), server_default=sa.text("'provider'"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "businesses",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("owner_user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("business_name", sa.String(length=255), nullable=True),
        sa.Column("business_type", sa.String(length=50), nullable=False),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("website_url", sa.String(length=500), nullable=True),
        sa.Column("verification_status", sa.String(length=30), server_default=sa.text("'pending'"), nullable=False),
        sa.Column("application_submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_notes", sa.Text(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("suspended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("identity_verified", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("identity_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("bank_connected", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("bank_connected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_account_id", sa.String(length=255), nullable=True),
        sa.Column("setup_step", sa.Integer(), server_default=sa.text("1"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("owner_user_id", name="uq_businesses_owner_user_id"),
        sa.CheckConstraint(
            "verification_status IN ('pending','under_review','approved','rejected','suspended')",
            name="ck_businesses_verification_status",
        ),
    )
    op.create_index("ix_businesses_verification_status", "businesses", ["verification_status"])

    op.create_table(
        "providers",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("business_id", sa.Uuid(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("provider_role", sa.String(length=30), server_default=sa.text("'staff'"), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("verification_status", sa.String(length=30), server_default=sa.text("'pending'"), nullable=False),
        sa.Column("identity_verified", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("identity_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "business_id", name="uq_providers_user_business"),
    )

    op.create_table(
        "provider_applications",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("business_id", sa.Uuid(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("application_status", sa.String(length=30), server_default=sa.text("'submitted'"), nullable=False),
        sa.Column("review_status", sa.String(length=30), server_default=sa.text("'pending'"), nullable=False),
        sa.Column("review_cycle", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("consents", JSON, nullable=False),
        sa.Column("submission_metadata", JSON, nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("approval_notes", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("business_id", name="uq_provider_applications_business_id"),
        sa.CheckConstraint(
            "application_status IN ('submitted','approved','rejected')",
            name="ck_provider_applications_status",
        ),
    )

    op.create_table(
        "business_documents",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("business_id", sa.Uuid(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("uploaded_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("document_type", sa.String(length=50), nullable=False),
        sa.Column("document_name", sa.String(length=255), nullable=False),
        sa.Column("storage_path", sa.String(length=500), nullable=False),
        sa.Column("file_url", sa.String(length=1000), nullable=False),
        sa.Column("content_type", sa.String(length=100), nullable=False),
        sa.Column("file_size_bytes", sa.BigInteger(), nullable=False),
        sa.Column("verification_status", sa.String(length=30), server_default=sa.text("'pending'"), nullable=False),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("reviewed_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("superseded_by_id", sa.Uuid(), sa.ForeignKey("business_documents.id"), nullable=True),
        sa.Column("superseded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "verification_status IN ('pending','under_review','verified','rejected')",
            name="ck_business_documents_status",
        ),
    )
    op.create_index(
        "ix_business_documents_business_created",
        "business_documents",
        ["business_id", "created_at"],
    )

    op.create_table(
        "business_setup_progress",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("business_id", sa.Uuid(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("current_step", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("total_steps", sa.Integer(), server_default=sa.text("7"), nullable=False),
        sa.Column("business_info_completed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("documents_completed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("phase_1_completed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("phase_1_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("identity_completed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("bank_connected", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("payment_setup_completed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("phase_2_completed", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("phase_2_completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("business_id", name="uq_business_setup_progress_business_id"),
    )

    op.create_table(
        "application_approvals",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("business_id", sa.Uuid(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "application_id",
            sa.Uuid(),
            sa.ForeignKey("provider_applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("approved_by", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("token_id", sa.String(length=64), nullable=False),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("approval_notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.UniqueConstraint("token_id", name="uq_application_approvals_token_id"),
    )

    op.create_table(
        "identity_verification_sessions",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("business_id", sa.Uuid(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("session_id", sa.String(length=255), nullable=False),
        sa.Column("session_type", sa.String(length=30), server_default=sa.text("'document'"), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("verification_report", JSON, nullable=True),
        sa.Column("last_error", JSON, nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("session_id", name="uq_identity_verification_sessions_session_id"),
    )
    op.create_index(
        "ix_identity_sessions_user_business_created",
        "identity_verification_sessions",
        ["user_id", "business_id", "created_at"],
    )

    op.create_table(
        "bank_connections",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("business_id", sa.Uuid(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("item_id", sa.String(length=255), nullable=False),
        sa.Column("access_token_encrypted", sa.Text(), nullable=False),
        sa.Column("account_id", sa.String(length=255), nullable=False),
        sa.Column("institution_id", sa.String(length=100), nullable=True),
        sa.Column("institution_name", sa.String(length=255), nullable=True),
        sa.Column("account_name", sa.String(length=255), nullable=True),
        sa.Column("account_mask", sa.String(length=10), nullable=True),
        sa.Column("account_type", sa.String(length=50), nullable=True),
        sa.Column("account_subtype", sa.String(length=50), nullable=True),
        sa.Column("routing_numbers", JSON, nullable=False),
        sa.Column("account_number_mask", sa.String(length=10), nullable=True),
        sa.Column("verification_status", sa.String(length=30), server_default=sa.text("'verified'"), nullable=False),
        sa.Column("connected_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("disconnected_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("business_id", name="uq_bank_connections_business_id"),
    )

    op.create_table(
        "payment_accounts",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("business_id", sa.Uuid(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("account_id", sa.String(length=255), nullable=False),
        sa.Column("account_type", sa.String(length=30), server_default=sa.text("'express'"), nullable=False),
        sa.Column("business_type", sa.String(length=30), nullable=False),
        sa.Column("country", sa.String(length=2), server_default=sa.text("'US'"), nullable=False),
        sa.Column("default_currency", sa.String(length=3), server_default=sa.text("'usd'"), nullable=False),
        sa.Column("charges_enabled", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("payouts_enabled", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("details_submitted", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("requirements", JSON, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("business_id", name="uq_payment_accounts_business_id"),
        sa.UniqueConstraint("account_id", name="uq_payment_accounts_account_id"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("old_value", JSON, nullable=True),
        sa.Column("new_value", JSON, nullable=True),
        sa.Column("change_summary", sa.Text(), nullable=True),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
    )
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_entity", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("payment_accounts")
    op.drop_table("bank_connections")
    op.drop_index("ix_identity_sessions_user_business_created", table_name="identity_verification_sessions")
    op.drop_table("identity_verification_sessions")
    op.drop_table("application_approvals")
    op.drop_table("business_setup_progress")
    op.drop_index("ix_business_documents_business_created", table_name="business_documents")
    op.drop_table("business_documents")
    op.drop_table("provider_applications")
    op.drop_table("providers")
    op.drop_index("ix_businesses_verification_status", table_name="businesses")
    op.drop_table("businesses")
    op.drop_table("users")
