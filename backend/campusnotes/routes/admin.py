"""
CampusNotes Backend: Admin Route Handlers
===========================================

What:  Taxonomy CRUD, cascade deletes, faculty management and note moderation.
Who:   The admin dashboard.

Every route here requires the admin role; the check is a router-level
dependency so no handler can forget it.

Cascade Deletes:
    DELETE /regulations/{id}, /branches/{id}, /subjects/{id} remove the node
    and everything below it. The response reports how many rows went and how
    many files could not be removed from the object store.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campusnotes.database import get_db_session
from campusnotes.schemas.common import ErrorResponse, MessageResponse
from campusnotes.schemas.faculty import FacultyCreate, FacultyResponse, FacultyUpdate
from campusnotes.schemas.note import AdminNoteView, FileUrlResponse, NoteView
from campusnotes.schemas.taxonomy import (
    BranchCreate,
    BranchResponse,
    BranchUpdate,
    CascadeDeleteResponse,
    DeletedCounts,
    RegulationCreate,
    RegulationResponse,
    RegulationUpdate,
    SubjectCreate,
    SubjectResponse,
    SubjectUpdate,
)
from campusnotes.security import Principal, require_admin
from campusnotes.services.cascade_service import (
    CascadeSummary,
    HierarchyKind,
    cascade_engine,
)
from campusnotes.services.faculty_service import faculty_service
from campusnotes.services.note_service import note_service
from campusnotes.services.taxonomy_service import taxonomy_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        403: {"description": "Admin access required", "model": ErrorResponse},
    },
)


def _cascade_response(summary: CascadeSummary) -> CascadeDeleteResponse:
    return CascadeDeleteResponse(
        message=summary.message,
        deleted=DeletedCounts(
            branches=summary.branches,
            subjects=summary.subjects,
            notes=summary.notes,
        ),
        blob_failures=summary.blob_failures,
    )


# ── Regulations ───────────────────────────────────────────────────────────

@router.get("/regulations", response_model=List[RegulationResponse])
async def list_regulations(db: AsyncSession = Depends(get_db_session)):
    return await taxonomy_service.list_regulations(db)


@router.post(
    "/regulations",
    response_model=RegulationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_regulation(
    body: RegulationCreate, db: AsyncSession = Depends(get_db_session)
):
    return await taxonomy_service.create_regulation(db, body)


@router.put("/regulations/{regulation_id}", response_model=RegulationResponse)
async def update_regulation(
    regulation_id: UUID, body: RegulationUpdate, db: AsyncSession = Depends(get_db_session)
):
    return await taxonomy_service.update_regulation(db, regulation_id, body)


@router.delete(
    "/regulations/{regulation_id}",
    response_model=CascadeDeleteResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Delete a regulation with all branches, subjects and notes under it",
)
async def delete_regulation(regulation_id: UUID, db: AsyncSession = Depends(get_db_session)):
    summary = await cascade_engine.delete_hierarchy(db, HierarchyKind.REGULATION, regulation_id)
    return _cascade_response(summary)


# ── Branches ──────────────────────────────────────────────────────────────

@router.get("/branches", response_model=List[BranchResponse])
async def list_branches(db: AsyncSession = Depends(get_db_session)):
    return await taxonomy_service.list_branches(db)


@router.post("/branches", response_model=BranchResponse, status_code=status.HTTP_201_CREATED)
async def create_branch(body: BranchCreate, db: AsyncSession = Depends(get_db_session)):
    return await taxonomy_service.create_branch(db, body)


@router.put("/branches/{branch_id}", response_model=BranchResponse)
async def update_branch(
    branch_id: UUID, body: BranchUpdate, db: AsyncSession = Depends(get_db_session)
):
    return await taxonomy_service.update_branch(db, branch_id, body)


@router.delete(
    "/branches/{branch_id}",
    response_model=CascadeDeleteResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Delete a branch with its subjects and notes",
)
async def delete_branch(branch_id: UUID, db: AsyncSession = Depends(get_db_session)):
    summary = await cascade_engine.delete_hierarchy(db, HierarchyKind.BRANCH, branch_id)
    return _cascade_response(summary)


# ── Subjects ──────────────────────────────────────────────────────────────

@router.get("/subjects", response_model=List[SubjectResponse])
async def list_subjects(db: AsyncSession = Depends(get_db_session)):
    return await taxonomy_service.list_subjects(db)


@router.post("/subjects", response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
async def create_subject(body: SubjectCreate, db: AsyncSession = Depends(get_db_session)):
    return await taxonomy_service.create_subject(db, body)


@router.put("/subjects/{subject_id}", response_model=SubjectResponse)
async def update_subject(
    subject_id: UUID, body: SubjectUpdate, db: AsyncSession = Depends(get_db_session)
):
    return await taxonomy_service.update_subject(db, subject_id, body)


@router.delete(
    "/subjects/{subject_id}",
    response_model=CascadeDeleteResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Delete a subject with its notes",
)
async def delete_subject(subject_id: UUID, db: AsyncSession = Depends(get_db_session)):
    summary = await cascade_engine.delete_hierarchy(db, HierarchyKind.SUBJECT, subject_id)
    return _cascade_response(summary)


# ── Faculty ───────────────────────────────────────────────────────────────

@router.get("/faculty", response_model=List[FacultyResponse])
async def list_faculty(db: AsyncSession = Depends(get_db_session)):
    return await faculty_service.list_faculty(db)


@router.post("/faculty", response_model=FacultyResponse, status_code=status.HTTP_201_CREATED)
async def create_faculty(body: FacultyCreate, db: AsyncSession = Depends(get_db_session)):
    return await faculty_service.create_faculty(db, body)


@router.put("/faculty/{faculty_id}", response_model=FacultyResponse)
async def update_faculty(
    faculty_id: UUID, body: FacultyUpdate, db: AsyncSession = Depends(get_db_session)
):
    return await faculty_service.update_faculty(db, faculty_id, body)


@router.delete("/faculty/{faculty_id}", response_model=MessageResponse)
async def delete_faculty(faculty_id: UUID, db: AsyncSession = Depends(get_db_session)):
    await faculty_service.delete_faculty(db, faculty_id)
    return MessageResponse(message="Faculty deleted successfully")


@router.get("/faculty/{faculty_id}/uploads", response_model=List[NoteView])
async def faculty_uploads(faculty_id: UUID, db: AsyncSession = Depends(get_db_session)):
    notes = await faculty_service.list_uploads(db, faculty_id)
    return await note_service.faculty_uploads(db, notes)


# ── Notes ─────────────────────────────────────────────────────────────────

@router.get("/notes", response_model=List[AdminNoteView])
async def list_notes(
    regulation: Optional[UUID] = Query(default=None),
    branch: Optional[UUID] = Query(default=None),
    semester: Optional[str] = Query(default=None),
    subject: Optional[UUID] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
):
    return await note_service.list_notes(
        db, regulation=regulation, branch=branch, semester=semester, subject=subject
    )


@router.get(
    "/notes/{note_id}/file",
    response_model=FileUrlResponse,
    responses={404: {"description": "File not found", "model": ErrorResponse}},
)
async def note_file(note_id: UUID, db: AsyncSession = Depends(get_db_session)):
    return FileUrlResponse(url=await note_service.file_url(db, note_id))


@router.delete("/notes/{note_id}", response_model=MessageResponse)
async def delete_note(
    note_id: UUID,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
):
    return await note_service.delete_note(db, principal, note_id)
