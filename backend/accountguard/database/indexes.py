"""
Index management, run once on application startup.
"""
from motor.motor_asyncio import AsyncIOMotorDatabase

from accountguard.database.databases import auth_db


async def create_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the indexes the account services rely on."""
    accounts = db[auth_db.Collections.ACCOUNTS]

    # Emails are lower-cased before every write, so this is case-insensitive
    await accounts.create_index("email", unique=True)
    await accounts.create_index("password_reset_token", sparse=True)
    await accounts.create_index("email_verification_token", sparse=True)
    await accounts.create_index("lock_until", sparse=True)
