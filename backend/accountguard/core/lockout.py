"""
Per-account login lockout.

State lives on the account document (``login_attempts`` and ``lock_until``)
and is only changed through single-document atomic updates, so two failed
logins racing each other are both counted.
"""
import logging
from datetime import datetime
from typing import Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel
from pymongo import ReturnDocument

from accountguard.config import AuthPolicy
from accountguard.core.timeutils import Clock, utcnow

logger = logging.getLogger(__name__)


class LockoutState(BaseModel):
    """Counter and lock after a failed attempt has been recorded."""
    login_attempts: int
    lock_until: Optional[datetime] = None
    locked: bool = False


def unlocked_filter(now: datetime) -> dict:
    """Match accounts with no lock or a lock that has lapsed."""
    return {"$or": [{"lock_until": None}, {"lock_until": {"$lte": now}}]}


class LockoutPolicy:
    """Records failed and successful logins against an accounts collection."""

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        policy: AuthPolicy,
        clock: Clock = utcnow,
    ):
        self.collection = collection
        self.policy = policy
        self.clock = clock

    async def record_failure(self, account_id: str) -> LockoutState:
        """
        Count a failed login and lock the account once the threshold is hit.

        Args:
            account_id: Account ObjectId as string

        Returns:
            LockoutState after the increment
        """
        oid = ObjectId(account_id)
        now = self.clock()

        # A lapsed lock starts a fresh window
        await self.collection.update_one(
            {"_id": oid, "lock_until": {"$lte": now}},
            {"$set": {"login_attempts": 0}, "$unset": {"lock_until": ""}},
        )

        doc = await self.collection.find_one_and_update(
            {"_id": oid},
            {"$inc": {"login_attempts": 1}, "$set": {"updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            return LockoutState(login_attempts=0)

        attempts = doc.get("login_attempts", 0)
        lock_until = doc.get("lock_until")

        if attempts >= self.policy.max_login_attempts:
            new_lock = now + self.policy.lock_duration
            result = await self.collection.update_one(
                {"_id": oid, **unlocked_filter(now)},
                {"$set": {"lock_until": new_lock}},
            )
            if result.modified_count:
                lock_until = new_lock
                logger.warning(
                    "Account %s locked until %s after %d failed attempts",
                    account_id, new_lock.isoformat(), attempts,
                )
        else:
            logger.info(
                "Failed login for account %s (%d/%d)",
                account_id, attempts, self.policy.max_login_attempts,
            )

        return LockoutState(
            login_attempts=attempts,
            lock_until=lock_until,
            locked=lock_until is not None and lock_until > now,
        )

    async def reset(self, account_id: str, last_login: Optional[datetime] = None) -> bool:
        """
        Reset failed attempts and clear a lapsed lock after a successful login.

        The update only applies while the account is unlocked, so a lock set
        by a concurrent failure survives a login that read the account earlier.

        Args:
            account_id: Account ObjectId as string
            last_login: Timestamp stored as ``last_login`` when given

        Returns:
            False if the account is locked right now
        """
        now = self.clock()
        update: dict = {
            "$set": {"login_attempts": 0, "updated_at": now},
            "$unset": {"lock_until": ""},
        }
        if last_login is not None:
            update["$set"]["last_login"] = last_login
        result = await self.collection.update_one(
            {"_id": ObjectId(account_id), **unlocked_filter(now)},
            update,
        )
        return bool(result.matched_count)

    async def unlock(self, account_id: str) -> bool:
        """Administrative unlock. Returns True if the account exists."""
        result = await self.collection.update_one(
            {"_id": ObjectId(account_id)},
            {
                "$set": {"login_attempts": 0, "updated_at": self.clock()},
                "$unset": {"lock_until": ""},
            },
        )
        if result.matched_count:
            logger.info("Account %s unlocked", account_id)
        return bool(result.matched_count)
