"""initial bursary portal schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 12:00:00.000000

This migration creates:
1. Enum types for statuses, document types, and profile attributes
2. Reference tables (counties, sub_counties, wards, institutions) and users
3. Student profiles and profile documents
4. Application periods, with a partial unique index allowing one active period
5. Applications, with a partial unique index allowing one DRAFT/PENDING/UNDER_REVIEW
   application per profile, and the application number sequence
6. Application documents, profile-document links, status history, review
   scores, admin notes, and notifications
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUMS: dict[str, tuple[str, ...]] = {
    "user_role": ("STUDENT", "ADMIN"),
    "gender": ("MALE", "FEMALE", "OTHER"),
    "education_level": ("HIGH_SCHOOL", "COLLEGE", "UNIVERSITY"),
    "who_lives_with": (
        "BOTH_PARENTS",
        "SINGLE_MOTHER",
        "SINGLE_FATHER",
        "GUARDIAN",
        "GRANDPARENT",
        "ORPHANAGE",
        "SELF",
        "OTHER",
    ),
    "household_income_range": ("BELOW_5K", "FROM_5K_TO_15K", "FROM_15K_TO_30K", "ABOVE_30K"),
    "orphan_status": ("BOTH_PARENTS_ALIVE", "SINGLE_ORPHAN", "DOUBLE_ORPHAN"),
    "profile_document_type": (
        "NATIONAL_ID",
        "PASSPORT",
        "KCSE_CERT",
        "ADMISSION_LETTER",
        "STUDENT_ID",
        "TRANSCRIPT",
    ),
    "application_status": (
        "DRAFT",
        "PENDING",
        "UNDER_REVIEW",
        "APPROVED",
        "REJECTED",
        "DISBURSED",
    ),
    "application_document_type": (
        "FEE_STRUCTURE",
        "BALANCE_STATEMENT",
        "SUPPORT_LETTER",
        "OTHER_EVIDENCE",
    ),
    "note_section": ("FINANCIAL", "ACADEMIC", "VULNERABILITY", "GENERAL"),
    "notification_type": ("STATUS_CHANGE", "APPLICATION_RECEIVED"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _base_columns() -> list[sa.Column]:
    """Primary key and timestamps (from BaseModel)."""
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _file_columns() -> list[sa.Column]:
    return [
        sa.Column("original_filename", sa.String(length=255), nullable=False),
        sa.Column("stored_filename", sa.String(length=255), nullable=False),
        sa.Column("file_path", sa.String(length=500), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(length=100), nullable=False),
    ]


def upgrade() -> None:
    """Create the bursary portal schema."""
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.execute("CREATE SEQUENCE IF NOT EXISTS application_number_seq START WITH 1")

    # Reference data
    op.create_table(
        "counties",
        *_base_columns(),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("code", sa.String(length=10), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_counties_name"),
    )
    op.create_table(
        "sub_counties",
        *_base_columns(),
        sa.Column("county_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["county_id"], ["counties.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_sub_counties_county_id"), "sub_counties", ["county_id"])
    op.create_table(
        "wards",
        *_base_columns(),
        sa.Column("sub_county_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["sub_county_id"], ["sub_counties.id"], ondelete="CASCADE"),
    )
    op.create_index(op.f("ix_wards_sub_county_id"), "wards", ["sub_county_id"])
    op.create_table(
        "institutions",
        *_base_columns(),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("institution_type", sa.String(length=50), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_institutions_name"), "institutions", ["name"])

    # Users
    op.create_table(
        "users",
        *_base_columns(),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("role", _enum("user_role"), nullable=False, server_default="STUDENT"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    # Student profiles
    op.create_table(
        "student_profiles",
        *_base_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        # Identity
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gender", _enum("gender"), nullable=True),
        sa.Column("national_id_number", sa.String(length=20), nullable=True),
        sa.Column("passport_number", sa.String(length=20), nullable=True),
        sa.Column("age_range", sa.String(length=20), nullable=True),
        # Location
        sa.Column("county_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("sub_county_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("ward_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("current_residence", sa.String(length=200), nullable=True),
        # Institution
        sa.Column("institution_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("institution_name", sa.String(length=200), nullable=True),
        sa.Column("institution_type", _enum("education_level"), nullable=True),
        sa.Column("programme_or_course", sa.String(length=200), nullable=True),
        sa.Column("admission_year", sa.Integer(), nullable=True),
        sa.Column("year_of_study", sa.Integer(), nullable=True),
        # Contact
        sa.Column("phone_number", sa.String(length=20), nullable=True),
        sa.Column("emergency_contact_name", sa.String(length=200), nullable=True),
        sa.Column("emergency_contact_phone", sa.String(length=20), nullable=True),
        # Family
        sa.Column("who_lives_with", _enum("who_lives_with"), nullable=True),
        sa.Column("who_lives_with_other", sa.String(length=200), nullable=True),
        sa.Column("guardian_name", sa.String(length=200), nullable=True),
        sa.Column("guardian_phone", sa.String(length=20), nullable=True),
        sa.Column("guardian_occupation", sa.String(length=100), nullable=True),
        sa.Column("household_income_range", _enum("household_income_range"), nullable=True),
        sa.Column("number_of_dependents", sa.Integer(), nullable=True),
        sa.Column("number_of_siblings", sa.Integer(), nullable=True),
        sa.Column("siblings_in_school", sa.Integer(), nullable=True),
        # Vulnerability and background
        sa.Column("orphan_status", _enum("orphan_status"), nullable=True),
        sa.Column("disability_status", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("disability_type", sa.String(length=200), nullable=True),
        sa.Column("kcse_grade", sa.String(length=5), nullable=True),
        sa.Column("previous_scholarship", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("previous_scholarship_details", sa.Text(), nullable=True),
        sa.Column("is_complete", sa.Boolean(), nullable=False, server_default="false"),
        # Constraints
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["county_id"], ["counties.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["sub_county_id"], ["sub_counties.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["ward_id"], ["wards.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["institution_id"], ["institutions.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("user_id", name="uq_student_profiles_user_id"),
        sa.UniqueConstraint("national_id_number", name="uq_student_profiles_national_id_number"),
        sa.UniqueConstraint("passport_number", name="uq_student_profiles_passport_number"),
        sa.CheckConstraint(
            "(national_id_number IS NULL) <> (passport_number IS NULL)",
            name="ck_student_profiles_one_identity_document",
        ),
    )

    op.create_table(
        "profile_documents",
        *_base_columns(),
        sa.Column("profile_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("document_type", _enum("profile_document_type"), nullable=False),
        *_file_columns(),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("verified_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["profile_id"], ["student_profiles.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "profile_id", "document_type", name="uq_profile_documents_profile_type"
        ),
    )
    op.create_index("ix_profile_documents_profile_id", "profile_documents", ["profile_id"])

    # Application periods
    op.create_table(
        "application_periods",
        *_base_columns(),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("academic_year", sa.String(length=7), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="false"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_application_periods_start_date", "application_periods", ["start_date"])
    op.create_index(
        "uq_application_periods_single_active",
        "application_periods",
        ["is_active"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    # Applications
    op.create_table(
        "applications",
        *_base_columns(),
        sa.Column("student_profile_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("application_period_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("application_number", sa.String(length=30), nullable=False),
        sa.Column("status", _enum("application_status"), nullable=False, server_default="DRAFT"),
        # Working fields
        sa.Column("outstanding_fees_balance", sa.Numeric(12, 2), nullable=True),
        sa.Column("total_annual_fee_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("hardship_narrative", sa.Text(), nullable=True),
        sa.Column("current_year_of_study", sa.String(length=50), nullable=True),
        sa.Column("current_fee_situation", sa.String(length=100), nullable=True),
        sa.Column("mode_of_sponsorship", sa.JSON(), nullable=True),
        sa.Column("how_supporting_education", sa.JSON(), nullable=True),
        sa.Column("difficulties_faced", sa.JSON(), nullable=True),
        sa.Column("is_fees_affecting_studies", sa.Boolean(), nullable=True),
        sa.Column("has_been_sent_home", sa.Boolean(), nullable=True),
        sa.Column("has_missed_exams_or_classes", sa.Boolean(), nullable=True),
        sa.Column("goal_for_academic_year", sa.Text(), nullable=True),
        sa.Column("referral_source", sa.String(length=100), nullable=True),
        sa.Column("career_aspirations", sa.Text(), nullable=True),
        sa.Column("community_involvement", sa.Text(), nullable=True),
        sa.Column("giving_back_plan", sa.Text(), nullable=True),
        sa.Column(
            "applied_to_other_scholarships", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column("other_scholarships_details", sa.Text(), nullable=True),
        # Snapshot
        sa.Column("snapshot_full_name", sa.String(length=200), nullable=True),
        sa.Column("snapshot_date_of_birth", sa.Date(), nullable=True),
        sa.Column("snapshot_gender", sa.String(length=20), nullable=True),
        sa.Column("snapshot_national_id", sa.String(length=20), nullable=True),
        sa.Column("snapshot_passport_number", sa.String(length=20), nullable=True),
        sa.Column("snapshot_institution", sa.String(length=200), nullable=True),
        sa.Column("snapshot_programme", sa.String(length=200), nullable=True),
        sa.Column("snapshot_education_level", _enum("education_level"), nullable=True),
        sa.Column("snapshot_county", sa.String(length=100), nullable=True),
        sa.Column("snapshot_sub_county", sa.String(length=100), nullable=True),
        sa.Column("snapshot_ward", sa.String(length=100), nullable=True),
        sa.Column("snapshot_phone", sa.String(length=20), nullable=True),
        sa.Column("snapshot_email", sa.String(length=255), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        # Review bookkeeping
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("disbursed_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("disbursed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("disbursement_notes", sa.Text(), nullable=True),
        # Constraints
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["student_profile_id"], ["student_profiles.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["application_period_id"], ["application_periods.id"], ondelete="SET NULL"
        ),
        sa.UniqueConstraint("application_number", name="uq_applications_application_number"),
    )
    op.create_index("ix_applications_status", "applications", ["status"])
    op.create_index("ix_applications_student_profile_id", "applications", ["student_profile_id"])
    op.create_index("ix_applications_submitted_at", "applications", ["submitted_at"])
    op.create_index(
        "uq_applications_one_active_per_profile",
        "applications",
        ["student_profile_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('DRAFT', 'PENDING', 'UNDER_REVIEW')"),
    )

    op.create_table(
        "application_documents",
        *_base_columns(),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("document_type", _enum("application_document_type"), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        *_file_columns(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_application_documents_application_id", "application_documents", ["application_id"]
    )

    op.create_table(
        "application_profile_document_links",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("profile_document_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "linked_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["profile_document_id"], ["profile_documents.id"], ondelete="CASCADE"
        ),
        sa.UniqueConstraint(
            "application_id",
            "profile_document_id",
            name="uq_application_profile_document_links_pair",
        ),
    )
    op.create_index(
        "ix_application_profile_document_links_profile_document_id",
        "application_profile_document_links",
        ["profile_document_id"],
    )

    # Append-only status ledger
    op.create_table(
        "application_status_history",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("previous_status", _enum("application_status"), nullable=True),
        sa.Column("new_status", _enum("application_status"), nullable=False),
        sa.Column("changed_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "changed_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("is_auto_generated", sa.Boolean(), nullable=False, server_default="false"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_application_status_history_application_changed",
        "application_status_history",
        ["application_id", "changed_at"],
    )

    op.create_table(
        "review_scores",
        *_base_columns(),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("reviewer_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("financial_need", sa.Integer(), nullable=False),
        sa.Column("academic_merit", sa.Integer(), nullable=False),
        sa.Column("community_impact", sa.Integer(), nullable=False),
        sa.Column("vulnerability", sa.Integer(), nullable=False),
        sa.Column("overall_score", sa.Numeric(3, 2), nullable=False),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "application_id", "reviewer_id", name="uq_review_scores_application_reviewer"
        ),
        sa.CheckConstraint("financial_need BETWEEN 1 AND 5", name="ck_review_scores_financial_need"),
        sa.CheckConstraint("academic_merit BETWEEN 1 AND 5", name="ck_review_scores_academic_merit"),
        sa.CheckConstraint(
            "community_impact BETWEEN 1 AND 5", name="ck_review_scores_community_impact"
        ),
        sa.CheckConstraint("vulnerability BETWEEN 1 AND 5", name="ck_review_scores_vulnerability"),
    )

    op.create_table(
        "admin_notes",
        *_base_columns(),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("admin_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("note_text", sa.Text(), nullable=False),
        sa.Column("section", _enum("note_section"), nullable=False, server_default="GENERAL"),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_admin_notes_application_id", "admin_notes", ["application_id"])

    op.create_table(
        "notifications",
        *_base_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", _enum("notification_type"), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_notifications_user_id_is_read", "notifications", ["user_id", "is_read"])
    op.create_index(
        "ix_notifications_user_id_created_at", "notifications", ["user_id", "created_at"]
    )


def downgrade() -> None:
    """Drop the bursary portal schema."""
    for table in (
        "notifications",
        "admin_notes",
        "review_scores",
        "application_status_history",
        "application_profile_document_links",
        "application_documents",
        "applications",
        "application_periods",
        "profile_documents",
        "student_profiles",
        "users",
        "institutions",
        "wards",
        "sub_counties",
        "counties",
    ):
        op.drop_table(table)

    op.execute("DROP SEQUENCE IF EXISTS application_number_seq")

    bind = op.get_bind()
    for name, values in reversed(list(ENUMS.items())):
        postgresql.ENUM(*values, name=name).drop(bind, checkfirst=True)
