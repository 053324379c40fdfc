"""
MongoDB client lifecycle.

One motor client is created lazily and shared by every request. It is
created with ``tz_aware=False`` so datetimes come back as naive UTC, which is
what ``accountguard.core.timeutils`` compares against.
"""
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from accountguard.config import get_settings

_mongo_client: Optional[AsyncIOMotorClient] = None


async def get_mongo_client() -> AsyncIOMotorClient:
    """Get or create the MongoDB client."""
    global _mongo_client
    if _mongo_client is None:
        _mongo_client = AsyncIOMotorClient(get_settings().mongo_uri, tz_aware=False)
    return _mongo_client


async def close_connections():
    """Close the MongoDB client on shutdown."""
    global _mongo_client
    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None


async def get_database(db_name: str) -> AsyncIOMotorDatabase:
    """Get a MongoDB database by name."""
    client = await get_mongo_client()
    return client[db_name]
