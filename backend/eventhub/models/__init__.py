# Models package init
"""
EventHub Backend — ORM Models
===============================

Importing this package registers every table on `Base.metadata`
(used by Alembic autogenerate and by `database.create_schema`).
"""

from eventhub.models.booking import Booking
from eventhub.models.review import Review
from eventhub.models.service import Service
from eventhub.models.user import User

__all__ = ["Booking", "Review", "Service", "User"]
