"""
CampusNotes Backend: Note Service (Business Logic Orchestrator)
=================================================================

What:  Upload handshake, note creation, browsing and deletion of notes.
Why:   Keeps routes thin; every rule about who may do what to a note lives here.
How:   Coordinates the metadata repository, the object store gateway and the
       upload ledger.
Who:   /api/notes routes and the note endpoints under /api/admin.

Workflows:
    - issue_upload_locations(): faculty asks for presigned PUT URLs
    - save_notes():            faculty registers uploaded files as notes
    - list_by_subject():       public browse, newest first, with download URLs
    - my_uploads():            the caller's own notes via the ledger
    - delete_note():           owner or admin; file removed after the commit
    - list_notes() / file_url(): admin listing and single-file access

Ordering Guarantee for Deletes:
    Ledger row and note row are deleted and committed first. Only then is the
    file deleted from the object store, best-effort. A crash in between leaves
    an orphaned file, never a note pointing at a missing file.
"""

import asyncio
import logging
import os
import uuid
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from campusnotes.database import atomic
from campusnotes.exceptions import (
    EmptySelectionError,
    NotFoundError,
    RoleDeniedError,
    ValidationError,
)
from campusnotes.models import Branch, Faculty, Note, Regulation, Subject
from campusnotes.schemas.common import MessageResponse, NamedRef, SubjectRef
from campusnotes.schemas.note import (
    AdminNoteView,
    FileMeta,
    NoteView,
    SavedNote,
    SaveNotesRequest,
    SaveNotesResponse,
    SubjectNotesResponse,
    UploaderSummary,
    UploadLocation,
    UploadResponse,
)
from campusnotes.security import Principal
from campusnotes.services.ledger_service import LedgerService, ledger_service
from campusnotes.services.object_store import (
    ObjectStoreGateway,
    build_upload_key,
    delete_objects_best_effort,
    object_store,
)

logger = logging.getLogger(__name__)

UPLOAD_PREFIX = "uploads/"


def note_title(original_name: str) -> str:
    """Title shown for a note: the uploaded file name without its extension."""
    stem, _ = os.path.splitext(original_name)
    return stem or original_name


def _with_parents(stmt):
    return stmt.options(
        selectinload(Note.regulation),
        selectinload(Note.branch),
        selectinload(Note.subject),
    )


class NoteService:
    """
    Orchestrates note workflows.

    Error Handling Strategy:
        Expected outcomes raise the specific application exception
        (ValidationError, EmptySelectionError, NotFoundError, RoleDeniedError).
        Database and object store failures propagate as StorageError
        subclasses and are rendered by the global handlers.
    """

    def __init__(
        self,
        store: Optional[ObjectStoreGateway] = None,
        ledger: Optional[LedgerService] = None,
    ):
        self.object_store = store or object_store
        self.ledger = ledger or ledger_service

    # ── Upload ────────────────────────────────────────────────────────────

    async def issue_upload_locations(self, files_meta: List[FileMeta]) -> UploadResponse:
        """
        Presigned PUT URLs for a batch of files, one key per file.

        Keys are issued here, not chosen by the client, and follow
        `uploads/{timestamp}_{originalName}`.
        """
        if not files_meta:
            raise EmptySelectionError(message="No files metadata provided", field="filesMeta")

        keyed = [(build_upload_key(f.original_name), f) for f in files_meta]
        urls = await asyncio.gather(
            *(self.object_store.issue_upload_location(key, f.file_type) for key, f in keyed)
        )
        logger.info("Issued %d upload URLs", len(urls))
        return UploadResponse(
            files=[
                UploadLocation(
                    file_key=key,
                    original_name=f.original_name,
                    file_type=f.file_type,
                    upload_url=url,
                )
                for (key, f), url in zip(keyed, urls)
            ]
        )

    async def save_notes(
        self, db: AsyncSession, principal: Principal, request: SaveNotesRequest
    ) -> SaveNotesResponse:
        """
        Create one Note per uploaded file and append each to the uploader's ledger.

        Steps:
            1. Reject an empty batch
            2. Check the uploader has a faculty record
            3. Check the regulation/branch/subject exist and belong together
            4. Check every key is an issued upload key not used by another note
            5. Insert notes and ledger rows (committed by the request session)
        """
        if not request.uploaded_files:
            raise EmptySelectionError(
                message="No successfully uploaded files", field="uploadedFiles"
            )

        faculty = await db.get(Faculty, principal.user_id)
        if faculty is None:
            raise NotFoundError(resource="faculty", message="Faculty not found")

        await self._check_placement(db, request)
        await self._check_keys(db, [f.file_key for f in request.uploaded_files])

        saved: List[SavedNote] = []
        for file in request.uploaded_files:
            note = Note(
                title=note_title(file.original_name),
                regulation_id=request.regulation,
                branch_id=request.branch,
                subject_id=request.subject,
                semester=request.semester,
                file_key=file.file_key,
                uploaded_by=faculty.id,
            )
            db.add(note)
            await db.flush()
            await self.ledger.record_upload(db, faculty.id, note.id)

            saved.append(
                SavedNote(
                    id=note.id,
                    title=note.title,
                    semester=note.semester,
                    regulation=note.regulation_id,
                    branch=note.branch_id,
                    subject=note.subject_id,
                    file_key=note.file_key,
                )
            )

        logger.info("Faculty %s saved %d notes", faculty.id, len(saved))
        return SaveNotesResponse(saved_notes=saved)

    # ── Browse ────────────────────────────────────────────────────────────

    async def list_by_subject(
        self, db: AsyncSession, subject_id: uuid.UUID
    ) -> SubjectNotesResponse:
        result = await db.execute(
            _with_parents(select(Note))
            .where(Note.subject_id == subject_id)
            .order_by(Note.created_at.desc())
        )
        notes = list(result.scalars().all())
        if not notes:
            raise NotFoundError(resource="notes", message="No notes found for this subject")

        uploaders = await self._uploaders(db, (n.uploaded_by for n in notes))
        views = await self._views(notes, uploaders)
        return SubjectNotesResponse(notes=views)

    async def my_uploads(self, db: AsyncSession, principal: Principal) -> List[NoteView]:
        """The caller's own notes, newest first; dangling ledger ids are skipped."""
        faculty = await db.get(Faculty, principal.user_id)
        if faculty is None:
            raise NotFoundError(resource="faculty", message="Faculty not found")
        notes = await self.ledger.list_uploads(db, faculty.id)
        return await self._views(notes, {})

    async def faculty_uploads(self, db: AsyncSession, notes: List[Note]) -> List[NoteView]:
        return await self._views(notes, {})

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete_note(
        self, db: AsyncSession, principal: Principal, note_id: uuid.UUID
    ) -> MessageResponse:
        """
        Delete one note: metadata first (committed), then its file.

        Raises:
            NotFoundError:   no such note
            RoleDeniedError: caller is neither the uploader nor an admin
        """
        async with atomic(db):
            note = await db.get(Note, note_id)
            if note is None:
                raise NotFoundError(resource="note", message="Note not found")
            if not principal.is_admin and note.uploaded_by != principal.user_id:
                raise RoleDeniedError(
                    message="You can only delete notes you uploaded",
                    context={"note_id": str(note_id), "user_id": str(principal.user_id)},
                )
            file_key = note.file_key
            await self.ledger.forget_notes(db, [note.id])
            await db.delete(note)

        await delete_objects_best_effort(self.object_store, [file_key])
        logger.info("Note %s deleted by %s (%s)", note_id, principal.user_id, principal.role.value)
        return MessageResponse(message="Note deleted successfully")

    # ── Admin ─────────────────────────────────────────────────────────────

    async def list_notes(
        self,
        db: AsyncSession,
        regulation: Optional[uuid.UUID] = None,
        branch: Optional[uuid.UUID] = None,
        semester: Optional[str] = None,
        subject: Optional[uuid.UUID] = None,
    ) -> List[AdminNoteView]:
        stmt = _with_parents(select(Note))
        if regulation is not None:
            stmt = stmt.where(Note.regulation_id == regulation)
        if branch is not None:
            stmt = stmt.where(Note.branch_id == branch)
        if semester:
            stmt = stmt.where(Note.semester == semester)
        if subject is not None:
            stmt = stmt.where(Note.subject_id == subject)

        result = await db.execute(stmt.order_by(Note.created_at.desc()))
        notes = list(result.scalars().all())
        uploaders = await self._uploaders(db, (n.uploaded_by for n in notes))

        views = []
        for note in notes:
            faculty = uploaders.get(note.uploaded_by)
            views.append(
                AdminNoteView(
                    id=note.id,
                    title=note.title,
                    semester=note.semester,
                    regulation=_named(note.regulation),
                    branch=_named(note.branch),
                    subject=_subject_ref(note.subject),
                    uploaded_by=UploaderSummary(
                        id=faculty.id,
                        name=faculty.name,
                        email=faculty.email,
                        designation=faculty.designation,
                        employee_id=faculty.employee_id,
                    ) if faculty else None,
                    created_at=note.created_at,
                )
            )
        return views

    async def file_url(self, db: AsyncSession, note_id: uuid.UUID) -> str:
        note = await db.get(Note, note_id)
        if note is None or not note.file_key:
            raise NotFoundError(resource="file", message="File not found")
        return await self.object_store.issue_download_location(note.file_key)

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _views(
        self, notes: List[Note], uploaders: Dict[uuid.UUID, Faculty]
    ) -> List[NoteView]:
        urls = await asyncio.gather(
            *(
                self.object_store.issue_download_location(n.file_key) if n.file_key
                else _none()
                for n in notes
            )
        )
        views = []
        for note, url in zip(notes, urls):
            faculty = uploaders.get(note.uploaded_by)
            views.append(
                NoteView(
                    id=note.id,
                    title=note.title,
                    semester=note.semester,
                    regulation=_named(note.regulation),
                    branch=_named(note.branch),
                    subject=_subject_ref(note.subject),
                    uploaded_by=NamedRef(id=faculty.id, name=faculty.name) if faculty else None,
                    created_at=note.created_at,
                    file_url=url,
                    file_key=note.file_key,
                )
            )
        return views

    @staticmethod
    async def _uploaders(
        db: AsyncSession, ids: Iterable[uuid.UUID]
    ) -> Dict[uuid.UUID, Faculty]:
        unique = list({i for i in ids if i is not None})
        if not unique:
            return {}
        result = await db.execute(select(Faculty).where(Faculty.id.in_(unique)))
        return {f.id: f for f in result.scalars().all()}

    @staticmethod
    async def _check_placement(db: AsyncSession, request: SaveNotesRequest) -> None:
        regulation = await db.get(Regulation, request.regulation)
        branch = await db.get(Branch, request.branch)
        subject = await db.get(Subject, request.subject)
        for field, entity in (("regulation", regulation), ("branch", branch), ("subject", subject)):
            if entity is None:
                raise ValidationError(message=f"{field.capitalize()} does not exist", field=field)
        if branch.regulation_id != regulation.id:
            raise ValidationError(
                message="Branch does not belong to the selected regulation", field="branch"
            )
        if subject.branch_id != branch.id:
            raise ValidationError(
                message="Subject does not belong to the selected branch", field="subject"
            )

    @staticmethod
    async def _check_keys(db: AsyncSession, keys: List[str]) -> None:
        if len(set(keys)) != len(keys):
            raise ValidationError(message="Duplicate file keys in request", field="uploadedFiles")
        for key in keys:
            if not key.startswith(UPLOAD_PREFIX):
                raise ValidationError(message=f"Invalid file key '{key}'", field="fileKey")
        taken = await db.execute(select(Note.file_key).where(Note.file_key.in_(keys)))
        existing = list(taken.scalars().all())
        if existing:
            raise ValidationError(
                message="File already registered as a note",
                field="fileKey",
                context={"keys": existing},
            )


def _named(entity) -> Optional[NamedRef]:
    return NamedRef(id=entity.id, name=entity.name) if entity is not None else None


def _subject_ref(subject: Optional[Subject]) -> Optional[SubjectRef]:
    if subject is None:
        return None
    return SubjectRef(id=subject.id, name=subject.name, code=subject.code)


async def _none() -> None:
    return None


note_service = NoteService()
