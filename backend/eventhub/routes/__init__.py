# Routes package init
"""
EventHub Backend — API Routes Package
=======================================

Route Inventory:
    - users.py:     POST/GET /api/users, GET /api/confirm-email, POST /api/login
    - bookings.py:  GET /api/availability/{service_id}/{date},
                    POST/GET /api/bookings, GET/PATCH /api/bookings/{id}
    - services.py:  /api/services CRUD, gallery images, service reviews
    - reviews.py:   GET/POST /api/reviews
    - admin.py:     GET /api/admin/stats
    - files.py:     GET /api/files/{path}
    - health.py:    GET /health

Routes stay thin: parse the request, call one service method, shape the
response. Failures are raised as EventHubError subclasses and rendered by
the handlers registered in main.py.
"""
