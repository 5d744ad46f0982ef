"""
CampusNotes Backend: Notes Route Handlers
===========================================

What:  Upload handshake, save, browse, delete and ZIP download of notes.
How:   Extracts the caller and the body, delegates to NoteService or the
       ArchiveAssemblyEngine, returns JSON (or the ZIP bytes).
Who:   Faculty upload screens, the student browse page, the admin dashboard.

Access:
    POST   /api/notes/upload          faculty
    POST   /api/notes/save-notes      faculty
    GET    /api/notes/my-uploads      faculty
    POST   /api/notes/download-zip    any authenticated caller
    GET    /api/notes/subject/{id}    public
    DELETE /api/notes/{id}            uploader or admin
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from campusnotes.database import get_db_session
from campusnotes.schemas.common import ErrorResponse, MessageResponse
from campusnotes.schemas.note import (
    DownloadZipRequest,
    NoteView,
    SaveNotesRequest,
    SaveNotesResponse,
    SubjectNotesResponse,
    UploadRequest,
    UploadResponse,
)
from campusnotes.security import Principal, get_principal, require_faculty
from campusnotes.services.archive_service import archive_engine
from campusnotes.services.note_service import note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notes", tags=["Notes"])

_AUTH_ERRORS = {
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Faculty access required", "model": ErrorResponse},
}


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, **_AUTH_ERRORS},
    summary="Request presigned upload URLs",
)
async def request_upload_urls(
    body: UploadRequest,
    principal: Principal = Depends(require_faculty),
) -> UploadResponse:
    """
    One presigned PUT URL per file in `filesMeta`.

    The client uploads each file directly to the object store, then calls
    /save-notes with the keys that succeeded.
    """
    return await note_service.issue_upload_locations(body.files_meta)


@router.post(
    "/save-notes",
    response_model=SaveNotesResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, **_AUTH_ERRORS},
    summary="Register uploaded files as notes",
)
async def save_notes(
    body: SaveNotesRequest,
    principal: Principal = Depends(require_faculty),
    db: AsyncSession = Depends(get_db_session),
) -> SaveNotesResponse:
    return await note_service.save_notes(db, principal, body)


@router.get(
    "/my-uploads",
    response_model=List[NoteView],
    responses=_AUTH_ERRORS,
    summary="Notes uploaded by the caller, newest first",
)
async def my_uploads(
    principal: Principal = Depends(require_faculty),
    db: AsyncSession = Depends(get_db_session),
) -> List[NoteView]:
    return await note_service.my_uploads(db, principal)


@router.post(
    "/download-zip",
    response_class=Response,
    responses={
        200: {"content": {"application/zip": {}}, "description": "ZIP of the selected notes"},
        400: {"description": "No notes selected", "model": ErrorResponse},
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        404: {"description": "Notes not found", "model": ErrorResponse},
        500: {"description": "Error creating ZIP", "model": ErrorResponse},
    },
    summary="Download several notes as one ZIP",
)
async def download_zip(
    body: DownloadZipRequest,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    """
    Build the archive in memory and send it as an attachment.

    Content-Length is set by Response from the body. The explicit identity
    encoding keeps GZipMiddleware from recompressing the archive.
    """
    archive = await archive_engine.build_archive(db, body.note_ids)
    logger.info(
        "Archive for %s: %d entries, %d bytes", principal.user_id, len(archive.entry_names), archive.size
    )
    return Response(
        content=archive.content,
        media_type=archive.media_type,
        headers={
            "Content-Disposition": f"attachment; filename={archive.filename}",
            "Content-Encoding": "identity",
        },
    )


@router.get(
    "/subject/{subject_id}",
    response_model=SubjectNotesResponse,
    responses={404: {"description": "No notes found for this subject", "model": ErrorResponse}},
    summary="Notes for one subject, with download URLs",
)
async def notes_by_subject(
    subject_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> SubjectNotesResponse:
    return await note_service.list_by_subject(db, subject_id)


@router.delete(
    "/{note_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}, **_AUTH_ERRORS},
    summary="Delete a note you uploaded",
)
async def delete_note(
    note_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return await note_service.delete_note(db, principal, note_id)
