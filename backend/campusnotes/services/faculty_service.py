"""
CampusNotes Backend: Faculty Service
======================================

What:  Admin management of faculty accounts and read access to their uploads.
Who:   /api/admin/faculty routes.

Rules carried from the original system:
    - email and employee id are unique; duplicates are a 400, checked before
      the write so the user gets a readable message instead of a constraint
      violation.
    - passwords are stored hashed (passlib) and never returned.
    - deleting a faculty member removes the account and its ledger rows but
      keeps every note they uploaded. Those notes keep `uploaded_by` pointing
      at the deleted id.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campusnotes.database import atomic
from campusnotes.exceptions import NotFoundError, ValidationError
from campusnotes.models import Faculty, Note
from campusnotes.schemas.faculty import FacultyCreate, FacultyResponse, FacultyUpdate
from campusnotes.security import hash_password
from campusnotes.services.ledger_service import LedgerService, ledger_service

logger = logging.getLogger(__name__)


def faculty_response(faculty: Faculty, uploaded: Optional[List[uuid.UUID]] = None) -> FacultyResponse:
    return FacultyResponse(
        id=faculty.id,
        name=faculty.name,
        email=faculty.email,
        employee_id=faculty.employee_id,
        designation=faculty.designation,
        created_at=faculty.created_at,
        uploaded_notes=uploaded or [],
    )


class FacultyService:

    def __init__(self, ledger: Optional[LedgerService] = None):
        self.ledger = ledger or ledger_service

    async def get(self, db: AsyncSession, faculty_id: uuid.UUID) -> Faculty:
        faculty = await db.get(Faculty, faculty_id)
        if faculty is None:
            raise NotFoundError(resource="faculty", resource_id=str(faculty_id))
        return faculty

    async def list_faculty(self, db: AsyncSession) -> List[FacultyResponse]:
        result = await db.execute(select(Faculty).order_by(Faculty.created_at.desc()))
        members = list(result.scalars().all())
        ledgers = await self.ledger.uploaded_note_ids(db, [f.id for f in members])
        return [faculty_response(f, ledgers.get(f.id)) for f in members]

    async def create_faculty(self, db: AsyncSession, data: FacultyCreate) -> FacultyResponse:
        await self._ensure_unique(db, email=data.email, employee_id=data.employee_id)
        faculty = Faculty(
            name=data.name,
            email=data.email,
            employee_id=data.employee_id,
            designation=data.designation,
            password_hash=hash_password(data.password),
        )
        db.add(faculty)
        await db.flush()
        logger.info("Faculty created: %s (%s)", faculty.id, faculty.employee_id)
        return faculty_response(faculty)

    async def update_faculty(
        self, db: AsyncSession, faculty_id: uuid.UUID, data: FacultyUpdate
    ) -> FacultyResponse:
        faculty = await self.get(db, faculty_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        email = changes.pop("email", None)
        employee_id = changes.pop("employee_id", None)
        await self._ensure_unique(
            db,
            email=email if email != faculty.email else None,
            employee_id=employee_id if employee_id != faculty.employee_id else None,
            exclude_id=faculty.id,
        )
        if email:
            faculty.email = email
        if employee_id:
            faculty.employee_id = employee_id

        password = changes.pop("password", None)
        if password:
            faculty.password_hash = hash_password(password)

        for field, value in changes.items():
            setattr(faculty, field, value)
        await db.flush()

        ledgers = await self.ledger.uploaded_note_ids(db, [faculty.id])
        return faculty_response(faculty, ledgers.get(faculty.id))

    async def delete_faculty(self, db: AsyncSession, faculty_id: uuid.UUID) -> None:
        """Remove the account and its ledger; the notes stay."""
        async with atomic(db):
            faculty = await self.get(db, faculty_id)
            await self.ledger.forget_faculty(db, faculty.id)
            await db.delete(faculty)
        logger.info("Faculty %s deleted; their notes were kept", faculty_id)

    async def list_uploads(self, db: AsyncSession, faculty_id: uuid.UUID) -> List[Note]:
        faculty = await self.get(db, faculty_id)
        return await self.ledger.list_uploads(db, faculty.id)

    @staticmethod
    async def _ensure_unique(
        db: AsyncSession,
        email: Optional[str] = None,
        employee_id: Optional[str] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        checks = (
            ("email", Faculty.email, email, "Email already exists"),
            ("employeeId", Faculty.employee_id, employee_id, "Employee ID already exists"),
        )
        for field, column, value, message in checks:
            if not value:
                continue
            stmt = select(Faculty.id).where(column == value)
            if exclude_id is not None:
                stmt = stmt.where(Faculty.id != exclude_id)
            if (await db.execute(stmt)).first() is not None:
                raise ValidationError(message=message, field=field)


faculty_service = FacultyService()
