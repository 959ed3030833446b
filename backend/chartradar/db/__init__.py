"""
Database package
"""
from .base import Base
from .session import get_db, SessionLocal

__all__ = ["Base", "get_db", "SessionLocal"]
