"""Database module for FastAPI backend"""

from .connection import get_db, create_db_engine, create_session_factory, close_engine

__all__ = ['get_db', 'create_db_engine', 'create_session_factory', 'close_engine']
