# Services package init
"""
CampusNotes Backend: Services Layer
=====================================

What:  Business logic between the routes (HTTP) and the database/object store.

Service Inventory:
    - ObjectStoreGateway / S3ObjectStore: presigned URLs and blob deletes
    - LedgerService: per-faculty list of uploaded note ids
    - TaxonomyService: regulations, branches, subjects
    - FacultyService: faculty accounts
    - NoteService: upload handshake, save, browse, delete
    - CascadeDeletionEngine: delete a taxonomy node and everything below it
    - ArchiveAssemblyEngine: ZIP download of selected notes

Each service module exposes a ready-to-use singleton (e.g. `note_service`);
the classes take their collaborators as optional constructor arguments so
tests can pass fakes.
"""
