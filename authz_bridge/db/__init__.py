"""Relational persistence for back-office authorizations (SQLAlchemy)."""
from .base import Base
from .models import Authorization
from .store import AuthorizationStore, AuthorizationTransaction, make_engine

__all__ = [
    "Base",
    "Authorization",
    "AuthorizationStore",
    "AuthorizationTransaction",
    "make_engine",
]
