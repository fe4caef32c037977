# Models package init
"""
Pinboard Backend: ORM Models
=============================

Both models are imported here so the User <-> Position relationship can be
resolved no matter which module is imported first (routes, Alembic, tests).
"""

from pinboard.models.position import Position
from pinboard.models.user import User

__all__ = ["Position", "User"]
