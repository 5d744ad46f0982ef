"""
CampusNotes Backend: Application Package
==========================================

Backend for sharing course notes: faculty upload PDFs into a
regulation → branch → subject taxonomy, students browse and download them,
admins maintain the taxonomy and faculty accounts.

Layers:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns, role checks
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← cascade, archive, ledger
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database  /  Object Store (S3)    │  ← async sessions, boto3
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
