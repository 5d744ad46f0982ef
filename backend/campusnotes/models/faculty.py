"""
CampusNotes Backend: Faculty and Upload Ledger Models
=======================================================

What:  `faculty` holds staff accounts; `faculty_uploads` is the ledger of note
       ids each faculty member uploaded.
Why separate ledger table (not an array column):
    Appending to an array column is a read-modify-write of the whole faculty
    row; two concurrent uploads by the same person could drop one id. One row
    per upload makes append and removal single-row inserts/deletes.

Ledger semantics:
    - `note_id` is a weak reference: no foreign key to notes. Ownership of a
      note is `Note.uploaded_by` alone; the ledger is a derived index that can
      be rebuilt from it (LedgerService.rebuild).
    - Readers join the ledger against `notes`, so an id whose note is already
      gone is filtered out instead of failing the request.
    - `seq` gives insertion order (most recent last).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from campusnotes.database import Base


class Faculty(Base):
    __tablename__ = "faculty"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    employee_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    designation: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<Faculty(id={self.id}, employee_id='{self.employee_id}')>"


class FacultyUpload(Base):
    __tablename__ = "faculty_uploads"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    faculty_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("faculty.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    note_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    added_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("faculty_id", "note_id", name="uq_faculty_uploads_faculty_note"),
    )
