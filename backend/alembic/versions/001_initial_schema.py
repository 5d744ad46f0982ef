"""Create taxonomy, faculty, notes and upload ledger tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema: regulations → branches → subjects, faculty, notes and
       the faculty_uploads ledger.
How:   PostgreSQL UUID primary keys generated by gen_random_uuid(); the ORM
       also generates them client-side, so the server default is a fallback
       for manual inserts.

Foreign keys have no ON DELETE CASCADE except faculty_uploads.faculty_id:
taxonomy deletes are carried out by the application, child rows first, in a
single transaction.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "regulations",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("number_of_semesters", sa.Integer(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "branches",
        _id(),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("code", sa.String(30), nullable=False),
        sa.Column("regulation_id", postgresql.UUID(as_uuid=True), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["regulation_id"], ["regulations.id"]),
    )
    op.create_index("ix_branches_regulation_id", "branches", ["regulation_id"])

    op.create_table(
        "subjects",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(30), nullable=False),
        sa.Column("branch_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("semester", sa.String(20), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
    )
    op.create_index("ix_subjects_branch_id", "subjects", ["branch_id"])

    op.create_table(
        "faculty",
        _id(),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("employee_id", sa.String(50), nullable=False),
        sa.Column("designation", sa.String(100), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("employee_id"),
    )

    op.create_table(
        "notes",
        _id(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("regulation_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("branch_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("subject_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("semester", sa.String(20), nullable=False),
        sa.Column(
            "file_key",
            sa.String(1024),
            nullable=False,
            comment="Object store key: uploads/{unix_millis}_{original_name}",
        ),
        # No FK: notes outlive the faculty account that uploaded them
        sa.Column("uploaded_by", postgresql.UUID(as_uuid=True), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("file_key"),
        sa.ForeignKeyConstraint(["regulation_id"], ["regulations.id"]),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"]),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"]),
    )
    op.create_index("ix_notes_regulation_id", "notes", ["regulation_id"])
    op.create_index("ix_notes_branch_id", "notes", ["branch_id"])
    op.create_index("ix_notes_subject_id", "notes", ["subject_id"])
    op.create_index("ix_notes_uploaded_by", "notes", ["uploaded_by"])
    op.create_index("idx_notes_created_at", "notes", [sa.text("created_at DESC")])

    op.create_table(
        "faculty_uploads",
        sa.Column("seq", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("faculty_id", postgresql.UUID(as_uuid=True), nullable=False),
        # Weak reference: no FK, readers join against notes
        sa.Column("note_id", postgresql.UUID(as_uuid=True), nullable=False),
        _created_at("added_at"),
        sa.PrimaryKeyConstraint("seq"),
        sa.ForeignKeyConstraint(["faculty_id"], ["faculty.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("faculty_id", "note_id", name="uq_faculty_uploads_faculty_note"),
    )
    op.create_index("ix_faculty_uploads_faculty_id", "faculty_uploads", ["faculty_id"])
    op.create_index("ix_faculty_uploads_note_id", "faculty_uploads", ["note_id"])


def downgrade() -> None:
    op.drop_table("faculty_uploads")
    op.drop_index("idx_notes_created_at", table_name="notes")
    op.drop_table("notes")
    op.drop_table("faculty")
    op.drop_table("subjects")
    op.drop_table("branches")
    op.drop_table("regulations")
