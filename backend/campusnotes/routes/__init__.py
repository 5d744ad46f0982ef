# Routes package init
"""
CampusNotes Backend: API Routes Package
=========================================

Route Inventory:
    - notes.py:   /api/notes   upload, save, browse, delete, ZIP download
    - admin.py:   /api/admin   taxonomy CRUD, cascade deletes, faculty, notes
    - meta.py:    /api/meta    public taxonomy listings
    - health.py:  /health      service health check

Routes stay thin: pull data out of the request, resolve the caller, call a
service, shape the response. Business rules live in services/.
"""
