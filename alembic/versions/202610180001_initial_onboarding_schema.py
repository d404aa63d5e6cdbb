"""Initial schema for identities, accounts, onboarding progress and form submissions

Revision ID: 202610180001
Revises:
Create Date: 2026-10-18 00:01:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "202610180001"
down_revision = None
branch_labels = None
depends_on = None

user_role_enum = sa.Enum(
    "employee",
    "manager",
    "admin",
    name="user_role",
)
onboarding_status_enum = sa.Enum(
    "pending",
    "in_progress",
    "completed",
    name="onboarding_status",
)


def _timestamp(name: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=None if nullable else sa.func.now(),
    )


def upgrade() -> None:
    op.create_table(
        "auth_identities",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("user_metadata", sa.JSON(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _timestamp("last_sign_in_at", nullable=True),
        sa.UniqueConstraint("email", name="uq_auth_identities_email"),
    )
    op.create_index("ix_auth_identities_email", "auth_identities", ["email"])

    op.create_table(
        "auth_sessions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "identity_id",
            sa.String(length=36),
            sa.ForeignKey("auth_identities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _timestamp("created_at"),
        _timestamp("revoked_at", nullable=True),
    )
    op.create_index("ix_auth_sessions_identity_id", "auth_sessions", ["identity_id"])

    # Profile rows share the identity id but carry no FK: the identity store
    # may live in a separate system.
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", user_role_enum, nullable=False, server_default="employee"),
        sa.Column("full_name", sa.String(length=128), nullable=True),
        sa.Column("employee_id", sa.String(length=32), nullable=True),
        sa.Column("department", sa.String(length=128), nullable=True),
        sa.Column("position", sa.String(length=128), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("employee_id", name="uq_users_employee_id"),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_department", "users", ["department"])

    op.create_table(
        "employee_id_allocations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _timestamp("allocated_at"),
    )

    op.create_table(
        "onboarding_progress",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "employee_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "onboarding_status",
            onboarding_status_enum,
            nullable=False,
            server_default="pending",
        ),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("employee_id", name="uq_onboarding_progress_employee_id"),
    )
    op.create_index(
        "ix_onboarding_progress_employee_id", "onboarding_progress", ["employee_id"]
    )
    op.create_index(
        "ix_onboarding_progress_onboarding_status",
        "onboarding_progress",
        ["onboarding_status"],
    )

    op.create_table(
        "form_submissions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "employee_id",
            sa.String(length=36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("form_type", sa.String(length=64), nullable=False),
        sa.Column("fields", sa.JSON(), nullable=False),
        sa.Column("electronic_signature", sa.String(length=512), nullable=False),
        sa.Column("signature_date", sa.Date(), nullable=False),
        _timestamp("submitted_at"),
        _timestamp("amended_at", nullable=True),
        sa.UniqueConstraint("employee_id", "form_type", name="uq_submission_per_form"),
    )
    op.create_index("ix_form_submissions_employee_id", "form_submissions", ["employee_id"])
    op.create_index("ix_form_submissions_form_type", "form_submissions", ["form_type"])

    op.create_table(
        "form_submission_amendments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "submission_id",
            sa.String(length=36),
            sa.ForeignKey("form_submissions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("amended_by", sa.String(length=36), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("previous_fields", sa.JSON(), nullable=False),
        sa.Column("previous_signature", sa.String(length=512), nullable=False),
        sa.Column("previous_signature_date", sa.Date(), nullable=False),
        _timestamp("amended_at"),
    )
    op.create_index(
        "ix_form_submission_amendments_submission_id",
        "form_submission_amendments",
        ["submission_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_form_submission_amendments_submission_id", "form_submission_amendments"
    )
    op.drop_table("form_submission_amendments")
    op.drop_index("ix_form_submissions_form_type", "form_submissions")
    op.drop_index("ix_form_submissions_employee_id", "form_submissions")
    op.drop_table("form_submissions")
    op.drop_index("ix_onboarding_progress_onboarding_status", "onboarding_progress")
    op.drop_index("ix_onboarding_progress_employee_id", "onboarding_progress")
    op.drop_table("onboarding_progress")
    op.drop_table("employee_id_allocations")
    op.drop_index("ix_users_department", "users")
    op.drop_index("ix_users_role", "users")
    op.drop_index("ix_users_email", "users")
    op.drop_table("users")
    op.drop_index("ix_auth_sessions_identity_id", "auth_sessions")
    op.drop_table("auth_sessions")
    op.drop_index("ix_auth_identities_email", "auth_identities")
    op.drop_table("auth_identities")
    onboarding_status_enum.drop(op.get_bind(), checkfirst=True)
    user_role_enum.drop(op.get_bind(), checkfirst=True)
