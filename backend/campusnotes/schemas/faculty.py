"""
CampusNotes Backend: Faculty Schemas
======================================

Password hashes never appear in any response model.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from campusnotes.schemas.common import CamelModel


def _normalize_email(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    email = v.strip().lower()
    local, sep, domain = email.partition("@")
    if not sep or not local or "." not in domain:
        raise ValueError("Invalid email address")
    return email


class FacultyCreate(CamelModel):
    name: str = Field(min_length=1, max_length=150)
    email: str = Field(max_length=255)
    password: str = Field(min_length=6, max_length=128)
    employee_id: str = Field(min_length=1, max_length=50)
    designation: str = Field(min_length=1, max_length=100)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_email(v)


class FacultyUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=150)
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, min_length=6, max_length=128)
    employee_id: Optional[str] = Field(default=None, min_length=1, max_length=50)
    designation: Optional[str] = Field(default=None, min_length=1, max_length=100)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_email(v)


class FacultyResponse(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    employee_id: str
    designation: str
    created_at: datetime
    # Live ledger entries only; ids of deleted notes are filtered out
    uploaded_notes: List[uuid.UUID] = Field(default_factory=list)
