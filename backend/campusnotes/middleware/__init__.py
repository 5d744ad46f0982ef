# Middleware package init
"""
CampusNotes Backend: Middleware Package
=========================================

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID: correlation id for every log line of the request
    2. Logging: method, path, status and duration, tagged with that id
"""
