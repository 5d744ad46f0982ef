"""
CampusNotes Backend: API Schemas Package
==========================================

Pydantic models for request bodies and response payloads. Field names are
snake_case in Python and camelCase on the wire (`noteIds`, `fileKey`,
`numberOfSemesters`), which is what the web clients send and expect.
"""
