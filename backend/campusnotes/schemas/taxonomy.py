"""
CampusNotes Backend: Taxonomy Schemas
=======================================

Regulation → Branch → Subject request and response models. Parent references
are ids on input and populated `{id, name}` objects on output.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from campusnotes.schemas.common import CamelModel, NamedRef


# ── Regulation ────────────────────────────────────────────────────────────

class RegulationCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    number_of_semesters: int = Field(ge=1, le=16)


class RegulationUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    number_of_semesters: Optional[int] = Field(default=None, ge=1, le=16)


class RegulationResponse(CamelModel):
    id: uuid.UUID
    name: str
    number_of_semesters: int
    created_at: datetime


# ── Branch ────────────────────────────────────────────────────────────────

class BranchCreate(CamelModel):
    name: str = Field(min_length=1, max_length=150)
    code: str = Field(min_length=1, max_length=30)
    regulation: uuid.UUID


class BranchUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    code: Optional[str] = Field(default=None, min_length=1, max_length=30)
    regulation: Optional[uuid.UUID] = None


class BranchResponse(CamelModel):
    id: uuid.UUID
    name: str
    code: str
    regulation: NamedRef
    created_at: datetime


# ── Subject ───────────────────────────────────────────────────────────────

class SubjectCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=30)
    branch: uuid.UUID
    semester: str = Field(min_length=1, max_length=20)


class SubjectUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    code: Optional[str] = Field(default=None, min_length=1, max_length=30)
    branch: Optional[uuid.UUID] = None
    semester: Optional[str] = Field(default=None, min_length=1, max_length=20)


class SubjectResponse(CamelModel):
    id: uuid.UUID
    name: str
    code: str
    semester: str
    branch: NamedRef
    created_at: datetime


# ── Cascade Delete ────────────────────────────────────────────────────────

class DeletedCounts(CamelModel):
    branches: int = 0
    subjects: int = 0
    notes: int = 0


class CascadeDeleteResponse(CamelModel):
    """
    Summary returned by DELETE /api/admin/{regulations,branches,subjects}/{id}.

    blob_failures counts files whose deletion from the object store failed
    after the metadata was removed; those files are orphaned, not referenced.
    """

    message: str
    deleted: DeletedCounts
    blob_failures: int = 0
