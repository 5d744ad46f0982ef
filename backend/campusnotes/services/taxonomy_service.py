"""
CampusNotes Backend: Taxonomy Service
=======================================

What:  Create, update and list regulations, branches and subjects.
Who:   Admin routes (write + full listings) and meta routes (public browse).

Deletion is not here: removing any taxonomy node is a cascade, handled by
CascadeDeletionEngine.

Parent checks:
    A branch must point at an existing regulation and a subject at an
    existing branch. A missing parent is a client error (400), reported
    before the insert so the database never sees a dangling foreign key.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from campusnotes.exceptions import NotFoundError, ValidationError
from campusnotes.models import Branch, Regulation, Subject
from campusnotes.schemas.common import NamedRef
from campusnotes.schemas.taxonomy import (
    BranchCreate,
    BranchResponse,
    BranchUpdate,
    RegulationCreate,
    RegulationResponse,
    RegulationUpdate,
    SubjectCreate,
    SubjectResponse,
    SubjectUpdate,
)

logger = logging.getLogger(__name__)


def regulation_response(reg: Regulation) -> RegulationResponse:
    return RegulationResponse(
        id=reg.id,
        name=reg.name,
        number_of_semesters=reg.number_of_semesters,
        created_at=reg.created_at,
    )


def branch_response(branch: Branch, regulation: Regulation) -> BranchResponse:
    return BranchResponse(
        id=branch.id,
        name=branch.name,
        code=branch.code,
        regulation=NamedRef(id=regulation.id, name=regulation.name),
        created_at=branch.created_at,
    )


def subject_response(subject: Subject, branch: Branch) -> SubjectResponse:
    return SubjectResponse(
        id=subject.id,
        name=subject.name,
        code=subject.code,
        semester=subject.semester,
        branch=NamedRef(id=branch.id, name=branch.name),
        created_at=subject.created_at,
    )


class TaxonomyService:

    # ── Regulations ───────────────────────────────────────────────────────

    async def list_regulations(self, db: AsyncSession) -> List[RegulationResponse]:
        result = await db.execute(select(Regulation).order_by(Regulation.created_at.desc()))
        return [regulation_response(r) for r in result.scalars().all()]

    async def create_regulation(
        self, db: AsyncSession, data: RegulationCreate
    ) -> RegulationResponse:
        reg = Regulation(name=data.name, number_of_semesters=data.number_of_semesters)
        db.add(reg)
        await db.flush()
        logger.info("Regulation created: %s (%s)", reg.id, reg.name)
        return regulation_response(reg)

    async def update_regulation(
        self, db: AsyncSession, regulation_id: uuid.UUID, data: RegulationUpdate
    ) -> RegulationResponse:
        reg = await self._get(db, Regulation, regulation_id, "regulation")
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(reg, field, value)
        await db.flush()
        return regulation_response(reg)

    # ── Branches ──────────────────────────────────────────────────────────

    async def list_branches(
        self, db: AsyncSession, regulation_id: Optional[uuid.UUID] = None
    ) -> List[BranchResponse]:
        stmt = select(Branch).options(selectinload(Branch.regulation))
        if regulation_id is not None:
            stmt = stmt.where(Branch.regulation_id == regulation_id)
        result = await db.execute(stmt.order_by(Branch.name))
        return [branch_response(b, b.regulation) for b in result.scalars().all()]

    async def create_branch(self, db: AsyncSession, data: BranchCreate) -> BranchResponse:
        regulation = await self._parent(db, Regulation, data.regulation, "regulation")
        branch = Branch(name=data.name, code=data.code, regulation_id=regulation.id)
        db.add(branch)
        await db.flush()
        logger.info("Branch created: %s (%s) under regulation %s", branch.id, branch.code, regulation.id)
        return branch_response(branch, regulation)

    async def update_branch(
        self, db: AsyncSession, branch_id: uuid.UUID, data: BranchUpdate
    ) -> BranchResponse:
        branch = await self._get(db, Branch, branch_id, "branch")
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "regulation" in changes:
            branch.regulation_id = (
                await self._parent(db, Regulation, changes.pop("regulation"), "regulation")
            ).id
        for field, value in changes.items():
            setattr(branch, field, value)
        await db.flush()
        regulation = await db.get(Regulation, branch.regulation_id)
        return branch_response(branch, regulation)

    # ── Subjects ──────────────────────────────────────────────────────────

    async def list_subjects(
        self,
        db: AsyncSession,
        branch_id: Optional[uuid.UUID] = None,
        semester: Optional[str] = None,
    ) -> List[SubjectResponse]:
        stmt = select(Subject).options(selectinload(Subject.branch))
        if branch_id is not None:
            stmt = stmt.where(Subject.branch_id == branch_id)
        if semester:
            stmt = stmt.where(Subject.semester == semester)
        result = await db.execute(stmt.order_by(Subject.created_at.desc()))
        return [subject_response(s, s.branch) for s in result.scalars().all()]

    async def create_subject(self, db: AsyncSession, data: SubjectCreate) -> SubjectResponse:
        branch = await self._parent(db, Branch, data.branch, "branch")
        subject = Subject(
            name=data.name,
            code=data.code,
            branch_id=branch.id,
            semester=data.semester,
        )
        db.add(subject)
        await db.flush()
        logger.info("Subject created: %s (%s) in branch %s", subject.id, subject.code, branch.id)
        return subject_response(subject, branch)

    async def update_subject(
        self, db: AsyncSession, subject_id: uuid.UUID, data: SubjectUpdate
    ) -> SubjectResponse:
        subject = await self._get(db, Subject, subject_id, "subject")
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "branch" in changes:
            subject.branch_id = (await self._parent(db, Branch, changes.pop("branch"), "branch")).id
        for field, value in changes.items():
            setattr(subject, field, value)
        await db.flush()
        branch = await db.get(Branch, subject.branch_id)
        return subject_response(subject, branch)

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    async def _get(db: AsyncSession, model, entity_id: uuid.UUID, resource: str):
        entity = await db.get(model, entity_id)
        if entity is None:
            raise NotFoundError(resource=resource, resource_id=str(entity_id))
        return entity

    @staticmethod
    async def _parent(db: AsyncSession, model, entity_id: uuid.UUID, field: str):
        entity = await db.get(model, entity_id)
        if entity is None:
            raise ValidationError(
                message=f"{field.capitalize()} '{entity_id}' does not exist",
                field=field,
            )
        return entity


taxonomy_service = TaxonomyService()
