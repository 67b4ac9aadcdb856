"""SQLAlchemy models.

All models should be imported here so `init_db` creates their tables.
"""

from app.core.database import Base
from app.models.kv_entry import KeyValueEntry

__all__ = ["Base", "KeyValueEntry"]
