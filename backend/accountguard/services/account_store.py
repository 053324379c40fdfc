"""
Data access for the accounts collection.

Every lookup hides accounts that are locked right now unless the caller
passes ``include_locked=True``. Only the credential check and the
one-time-secret flows need to see locked accounts.
"""
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from accountguard.core.lockout import unlocked_filter
from accountguard.core.timeutils import Clock, utcnow
from accountguard.database.databases import auth_db
from accountguard.models.account import Account, normalize_email


def _to_account(doc: Optional[dict]) -> Optional[Account]:
    if not doc:
        return None
    doc["_id"] = str(doc["_id"])
    return Account(**doc)


def _object_id(account_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(account_id)
    except (InvalidId, TypeError):
        return None


class AccountStore:
    """Guarded reads and plain writes over ``auth_db.accounts``."""

    def __init__(self, db: AsyncIOMotorDatabase, clock: Clock = utcnow):
        self.db = db
        self.collection = db[auth_db.Collections.ACCOUNTS]
        self.clock = clock

    def _guard(self, query: dict, include_locked: bool) -> dict:
        if include_locked:
            return query
        guard = unlocked_filter(self.clock())
        if not query:
            return guard
        return {"$and": [query, guard]}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def find_one(self, query: dict, include_locked: bool = False) -> Optional[Account]:
        doc = await self.collection.find_one(self._guard(query, include_locked))
        return _to_account(doc)

    async def find_many(
        self,
        query: Optional[dict] = None,
        skip: int = 0,
        limit: int = 50,
        include_locked: bool = False,
    ) -> list[Account]:
        """
        List accounts matching ``query``, oldest first.

        Args:
            query: MongoDB filter (defaults to all accounts)
            skip: Number of accounts to skip
            limit: Maximum number of accounts to return
            include_locked: Also return accounts that are locked right now

        Returns:
            List of Account models
        """
        cursor = self.collection.find(
            self._guard(query or {}, include_locked),
            sort=[("created_at", 1)],
            skip=skip,
            limit=limit,
        )
        docs = await cursor.to_list(length=limit)
        return [_to_account(doc) for doc in docs]

    async def count(self, query: Optional[dict] = None, include_locked: bool = False) -> int:
        return await self.collection.count_documents(self._guard(query or {}, include_locked))

    async def get_by_id(self, account_id: str, include_locked: bool = False) -> Optional[Account]:
        oid = _object_id(account_id)
        if oid is None:
            return None
        return await self.find_one({"_id": oid}, include_locked=include_locked)

    async def get_by_email(self, email: str, include_locked: bool = False) -> Optional[Account]:
        return await self.find_one({"email": normalize_email(email)}, include_locked=include_locked)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def insert(self, account: Account) -> Account:
        doc = account.model_dump(by_alias=True, exclude={"id"})
        doc["email"] = normalize_email(doc["email"])
        result = await self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return _to_account(doc)

    async def update_fields(
        self,
        account_id: str,
        set_fields: Optional[dict[str, Any]] = None,
        unset_fields: tuple[str, ...] = (),
        extra_filter: Optional[dict] = None,
    ) -> Optional[Account]:
        """
        Apply ``$set``/``$unset`` to one account and return the updated document.

        ``extra_filter`` makes the update conditional; None is returned when
        nothing matched.
        """
        oid = _object_id(account_id)
        if oid is None:
            return None
        update: dict[str, Any] = {"$set": {**(set_fields or {}), "updated_at": self.clock()}}
        if unset_fields:
            update["$unset"] = {field: "" for field in unset_fields}
        doc = await self.collection.find_one_and_update(
            {"_id": oid, **(extra_filter or {})},
            update,
            return_document=ReturnDocument.AFTER,
        )
        return _to_account(doc)

    async def pull(self, account_id: str, field: str, value: Any) -> bool:
        """Remove ``value`` from a list field; True only if it was present."""
        oid = _object_id(account_id)
        if oid is None:
            return False
        result = await self.collection.update_one(
            {"_id": oid, field: value},
            {"$pull": {field: value}, "$set": {"updated_at": self.clock()}},
        )
        return result.modified_count > 0
