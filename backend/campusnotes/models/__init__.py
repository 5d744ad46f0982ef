"""
CampusNotes Backend: ORM Models Package
=========================================

Hierarchy (parents own children through foreign keys on the child):

    Regulation ─< Branch ─< Subject ─< Note
                     └──────────────────< Note (direct branch reference)

    Faculty ─< FacultyUpload (ledger of uploaded note ids, weak reference)
    Note.uploaded_by → Faculty.id (plain column, survives faculty deletion)

Parents expose no child collections; deletes walk the hierarchy
with explicit batch queries (see services/cascade_service.py), never through
ORM cascades.
"""

from campusnotes.models.branch import Branch
from campusnotes.models.faculty import Faculty, FacultyUpload
from campusnotes.models.note import Note
from campusnotes.models.regulation import Regulation
from campusnotes.models.subject import Subject

__all__ = ["Branch", "Faculty", "FacultyUpload", "Note", "Regulation", "Subject"]
