"""
Database package — persisted per-address activity records (SQLAlchemy).
"""

from backend_megarank.database.activity_store import ActivityStore, Base, UserActivity
from backend_megarank.database.models import UserActivityRecord

__all__ = ["ActivityStore", "Base", "UserActivity", "UserActivityRecord"]
