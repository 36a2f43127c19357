# Routes package init
"""
Client Records Backend — API Routes Package
=============================================

Route Inventory:
    - clients.py: /api/clients/...  (records, search, details, photos)
    - health.py:  GET /health       (service health check)

Routes stay thin: read the request, call a service, pick the status code.
Errors are raised as exceptions and formatted by the handlers in main.py.
"""
