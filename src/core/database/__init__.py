from src.core.database.session import async_session, engine, get_db, unit_of_work
from src.core.database.base import Base, BaseModel, BigIntPK, SoftDeleteMixin

__all__ = [
    "async_session",
    "engine",
    "get_db",
    "unit_of_work",
    "Base",
    "BaseModel",
    "BigIntPK",
    "SoftDeleteMixin",
]
