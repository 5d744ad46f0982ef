"""
CampusNotes Backend: Note SQLAlchemy Model
============================================

What:  ORM model representing the `notes` table.
Why:   A note is the metadata half of an uploaded file; the bytes live in the
       object store under `file_key`.
Who:   NoteService (create, list, delete), CascadeDeletionEngine (bulk delete),
       ArchiveAssemblyEngine (resolve ids to keys), LedgerService (joins).

Table Design Rationale:
    - regulation/branch/subject: the note stores all three ancestors so the
      browse endpoints can filter on any level without joins. Consistency
      between them (subject.branch == branch, branch.regulation == regulation)
      is checked when notes are saved, not by the database.
    - file_key: exactly one blob per note; unique so two notes never share a
      blob (deleting one would break the other).
    - uploaded_by: plain UUID column, not a foreign key. Deleting a faculty
      member keeps their notes; the reference may then dangle.
    - created_at index: listings are newest-first.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campusnotes.database import Base
from campusnotes.models.branch import Branch
from campusnotes.models.regulation import Regulation
from campusnotes.models.subject import Subject


class Note(Base):
    """
    An uploaded course note.

    Lifecycle:
        1. Faculty requests a presigned upload URL and PUTs the file to S3
        2. Faculty saves the metadata; a Note row and a ledger row are created
        3. Deleted by its owner, by an admin, or by a cascade from any ancestor;
           the blob is deleted only after the row deletion has committed
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)

    regulation_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("regulations.id"), nullable=False, index=True
    )
    branch_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("branches.id"), nullable=False, index=True
    )
    subject_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("subjects.id"), nullable=False, index=True
    )
    semester: Mapped[str] = mapped_column(String(20), nullable=False)

    # Object store key, e.g. uploads/1718000000000_unit1.pdf
    file_key: Mapped[str] = mapped_column(String(1024), nullable=False, unique=True)

    uploaded_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    regulation: Mapped[Regulation] = relationship(lazy="raise")
    branch: Mapped[Branch] = relationship(lazy="raise")
    subject: Mapped[Subject] = relationship(lazy="raise")

    __table_args__ = (
        Index("idx_notes_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title='{self.title}', file_key='{self.file_key}')>"
