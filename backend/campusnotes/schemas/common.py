"""
CampusNotes Backend: Shared Schema Building Blocks
====================================================

What:  Base model with camelCase aliases, reference shapes used inside other
       responses, and the error/health/message envelopes.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base for every API schema.

    Why populate_by_name: services build responses with Python field names,
    clients send camelCase; both must validate.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class NamedRef(CamelModel):
    """A populated parent reference: just enough to render a label."""

    id: uuid.UUID
    name: str


class SubjectRef(NamedRef):
    code: str


class MessageResponse(CamelModel):
    message: str


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "Regulation with ID '...' was not found",
            "request_id": "a1b2c3d4"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    object_store: str = Field(description="Object store status: available, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
