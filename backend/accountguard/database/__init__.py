"""
Database module - MongoDB connection and database definitions.
"""
from accountguard.database.connections import (
    get_mongo_client,
    close_connections,
    get_database,
)
from accountguard.database.databases import auth_db
from accountguard.database.indexes import create_indexes

__all__ = [
    "get_mongo_client",
    "close_connections",
    "get_database",
    "auth_db",
    "create_indexes",
]
