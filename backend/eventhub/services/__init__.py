# Services package init
"""
EventHub Backend — Services Layer
===================================

What:  Business rules between the routes (HTTP) and the database.
How:   Each service receives its collaborators (session, notifier, file
       store) in its constructor; dependencies.py wires them per request.

Service Inventory:
    - AvailabilityService: UTC day normalization and the one-active-booking-per-day guard
    - BookingService: create / list / confirm / cancel bookings, booking emails
    - CredentialService: registration, email confirmation, login, bearer tokens
    - CatalogService: service CRUD and the image gallery
    - ReviewService: reviews and the running rating mean
    - ReportService: admin aggregates
    - FileService: upload validation, storage, and cleanup
    - Notifier: outbound email (SMTP) or log-only delivery
"""
