"""
CampusNotes Backend: Faculty Upload Ledger
============================================

What:  Keeps `faculty_uploads` (the list of note ids each faculty member
       uploaded) in step with note creation and deletion.
Who:   NoteService on save/delete, CascadeDeletionEngine on cascades,
       FacultyService and the my-uploads route on reads.

Consistency Rules:
    - Note ownership is `Note.uploaded_by`; the ledger is a derived index.
    - Writes go through the caller's session, so they commit with the caller's
      transaction. They are not required to be atomic with the note write.
    - Every read joins against `notes`, so an id whose note has disappeared is
      skipped, never returned and never an error.
    - `rebuild()` recomputes one faculty member's ledger from `notes`.
"""

import logging
import uuid
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from campusnotes.models import FacultyUpload, Note

logger = logging.getLogger(__name__)


class LedgerService:

    async def record_upload(
        self, db: AsyncSession, faculty_id: uuid.UUID, note_id: uuid.UUID
    ) -> None:
        """Append `note_id` to the end of the faculty member's ledger."""
        db.add(FacultyUpload(faculty_id=faculty_id, note_id=note_id))
        await db.flush()

    async def forget_notes(self, db: AsyncSession, note_ids: Iterable[uuid.UUID]) -> int:
        """Remove ledger rows for `note_ids`, whoever owns them. Returns rows removed."""
        ids = list(note_ids)
        if not ids:
            return 0
        result = await db.execute(
            delete(FacultyUpload)
            .where(FacultyUpload.note_id.in_(ids))
        )
        return result.rowcount or 0

    async def forget_faculty(self, db: AsyncSession, faculty_id: uuid.UUID) -> int:
        result = await db.execute(
            delete(FacultyUpload)
            .where(FacultyUpload.faculty_id == faculty_id)
        )
        return result.rowcount or 0

    async def uploaded_note_ids(
        self, db: AsyncSession, faculty_ids: Sequence[uuid.UUID]
    ) -> Dict[uuid.UUID, List[uuid.UUID]]:
        """
        Live ledger per faculty member, in insertion order.

        The inner join drops ledger rows whose note no longer exists.
        """
        ledger: Dict[uuid.UUID, List[uuid.UUID]] = defaultdict(list)
        if not faculty_ids:
            return ledger
        result = await db.execute(
            select(FacultyUpload.faculty_id, FacultyUpload.note_id)
            .join(Note, Note.id == FacultyUpload.note_id)
            .where(FacultyUpload.faculty_id.in_(list(faculty_ids)))
            .order_by(FacultyUpload.seq)
        )
        for faculty_id, note_id in result.all():
            ledger[faculty_id].append(note_id)
        return ledger

    async def list_uploads(self, db: AsyncSession, faculty_id: uuid.UUID) -> List[Note]:
        """
        The faculty member's live notes, most recent first.

        Storage order is insertion order; the newest-first view is produced
        here at read time.
        """
        result = await db.execute(
            select(Note)
            .join(FacultyUpload, FacultyUpload.note_id == Note.id)
            .where(FacultyUpload.faculty_id == faculty_id)
            .options(
                selectinload(Note.regulation),
                selectinload(Note.branch),
                selectinload(Note.subject),
            )
            .order_by(Note.created_at.desc(), FacultyUpload.seq.desc())
        )
        return list(result.scalars().all())

    async def rebuild(self, db: AsyncSession, faculty_id: uuid.UUID) -> int:
        """
        Replace the faculty member's ledger with one row per note they own.

        Returns the number of ledger rows written.
        """
        await self.forget_faculty(db, faculty_id)
        result = await db.execute(
            select(Note.id)
            .where(Note.uploaded_by == faculty_id)
            .order_by(Note.created_at)
        )
        note_ids = list(result.scalars().all())
        db.add_all(FacultyUpload(faculty_id=faculty_id, note_id=nid) for nid in note_ids)
        await db.flush()
        logger.info("Rebuilt upload ledger for faculty %s: %d notes", faculty_id, len(note_ids))
        return len(note_ids)


ledger_service = LedgerService()
