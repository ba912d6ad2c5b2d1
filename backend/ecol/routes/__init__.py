"""
Ecol Backend: API Routes Package
================================

Route Inventory:
    - points.py:   GET  /points            (filter by city, state, items)
                   GET  /points/{id}       (point + accepted item titles)
                   POST /points            (JSON or multipart with image)
    - items.py:    GET  /items             (item catalog with icon URLs)
    - uploads.py:  GET  /uploads/{path}    (item icons and point images)
    - health.py:   GET  /health            (service health check)

Routes stay thin: parse the request, call a service, shape the response.
"""
