"""
CampusNotes Backend: Note Schemas
===================================

What:  Request/response models for upload, save, browse, delete and archive
       download of notes.

Upload Flow (two requests):
    1. POST /api/notes/upload     {filesMeta: [{originalName, fileType}]}
       → presigned PUT URLs, one per file, with the keys they were issued for
    2. Client PUTs each file directly to the object store
    3. POST /api/notes/save-notes {regulation, branch, subject, semester,
                                   uploadedFiles: [{fileKey, originalName}]}
       → one Note per successfully uploaded file
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from campusnotes.schemas.common import CamelModel, NamedRef, SubjectRef


# ── Upload ────────────────────────────────────────────────────────────────

class FileMeta(CamelModel):
    original_name: str = Field(min_length=1, max_length=255)
    file_type: str = Field(default="application/pdf", max_length=100)


class UploadRequest(CamelModel):
    files_meta: List[FileMeta] = Field(default_factory=list)


class UploadLocation(CamelModel):
    file_key: str
    original_name: str
    file_type: str
    upload_url: str


class UploadResponse(CamelModel):
    message: str = "Upload URLs generated"
    files: List[UploadLocation]


class UploadedFile(CamelModel):
    file_key: str = Field(min_length=1, max_length=1024)
    original_name: str = Field(min_length=1, max_length=255)


class SaveNotesRequest(CamelModel):
    regulation: uuid.UUID
    branch: uuid.UUID
    subject: uuid.UUID
    semester: str = Field(min_length=1, max_length=20)
    uploaded_files: List[UploadedFile] = Field(default_factory=list)


class SavedNote(CamelModel):
    id: uuid.UUID
    title: str
    semester: str
    regulation: uuid.UUID
    branch: uuid.UUID
    subject: uuid.UUID
    file_key: str


class SaveNotesResponse(CamelModel):
    message: str = "Notes saved successfully"
    saved_notes: List[SavedNote]


# ── Browse ────────────────────────────────────────────────────────────────

class NoteView(CamelModel):
    """A note as shown to readers, with a time-limited download URL."""

    id: uuid.UUID
    title: str
    semester: str
    regulation: Optional[NamedRef] = None
    branch: Optional[NamedRef] = None
    subject: Optional[SubjectRef] = None
    uploaded_by: Optional[NamedRef] = None
    created_at: datetime
    file_url: Optional[str] = None
    file_key: str


class SubjectNotesResponse(CamelModel):
    notes: List[NoteView]


class UploaderSummary(NamedRef):
    email: str
    designation: str
    employee_id: str


class AdminNoteView(CamelModel):
    """Admin listing row. The file key stays server-side; use /file for a URL."""

    id: uuid.UUID
    title: str
    semester: str
    regulation: Optional[NamedRef] = None
    branch: Optional[NamedRef] = None
    subject: Optional[SubjectRef] = None
    uploaded_by: Optional[UploaderSummary] = None
    created_at: datetime


class FileUrlResponse(CamelModel):
    url: str


# ── Archive Download ──────────────────────────────────────────────────────

class DownloadZipRequest(CamelModel):
    note_ids: List[uuid.UUID] = Field(default_factory=list)
