"""
EventHub Backend — Application Package Initializer
===================================================

What: Marks the `eventhub` directory as a Python package.
Why:  Enables module imports like `from eventhub.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows the same layered split for every resource
    (users, services, bookings, reviews, admin stats):

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │    Dependencies (wiring per request)│  ← builds services with their collaborators
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← availability, booking workflow, credentials
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Services never reach for a global session or mail channel: they receive
    both in their constructor, which is what lets tests swap in a SQLite
    database and a recording notifier.
"""

__version__ = "1.0.0"
