# Routes package init
"""
PhotoFiler Backend: API Routes Package
========================================

Route Inventory:
    - photos.py:       GET  /api/backends
                       POST /api/photos/save
                       POST /api/photos/save/gallery-retry
                       POST /api/cloud-upload            (always 501)
    - root_folder.py:  GET|PUT|DELETE /api/root-folder
    - gallery.py:      GET  /api/gallery
                       GET  /api/labels/suggest
                       GET  /api/exports/{name}
    - health.py:       GET  /health

Routes stay thin: they build the request-driven interaction seams and call
the SaveOrchestrator. Errors propagate to the handlers in main.py.
"""
