"""Database package for the CRM record store."""
from db.connection import AsyncSessionLocal, create_all, dispose_engine, engine, get_db

__all__ = ["engine", "AsyncSessionLocal", "get_db", "create_all", "dispose_engine"]
