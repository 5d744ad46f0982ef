"""
CampusNotes Backend: Taxonomy Browse Routes
=============================================

What:  Public, read-only listings that drive the regulation → branch →
       subject pickers on the browse and upload screens.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from campusnotes.database import get_db_session
from campusnotes.schemas.taxonomy import BranchResponse, RegulationResponse, SubjectResponse
from campusnotes.services.taxonomy_service import taxonomy_service

router = APIRouter(prefix="/api/meta", tags=["Meta"])


@router.get("/regulations", response_model=List[RegulationResponse])
async def regulations(db: AsyncSession = Depends(get_db_session)):
    return await taxonomy_service.list_regulations(db)


@router.get("/branches", response_model=List[BranchResponse])
async def branches(
    regulation: Optional[UUID] = Query(default=None, description="Only branches of this regulation"),
    db: AsyncSession = Depends(get_db_session),
):
    return await taxonomy_service.list_branches(db, regulation_id=regulation)


@router.get("/subjects", response_model=List[SubjectResponse])
async def subjects(
    branch: Optional[UUID] = Query(default=None, description="Only subjects of this branch"),
    semester: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
):
    return await taxonomy_service.list_subjects(db, branch_id=branch, semester=semester)
