"""
Ecol Backend: Services Layer
============================

Business logic between routes (HTTP) and the database (persistence).

Service Inventory:
    - FileService: upload validation, storage, cleanup and public URLs
    - ItemService: item catalog, item id checks, default item seeding
    - PointService: point listing/filtering, detail lookup, creation

Services are stateless singletons; each call receives its session.
"""
