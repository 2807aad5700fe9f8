# Routes package init
"""
SnackCart Backend — API Routes Package
=======================================

Route Inventory:
    - snacks.py:   /api/snacks             list / create
                   /api/snacks/{id}        get / update / delete
    - uploads.py:  GET /uploads/{path}     stored snack photos
    - health.py:   GET /health             service health check

Routes stay thin: read the request, call a service, return its result.
"""
