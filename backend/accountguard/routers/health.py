"""
Liveness and readiness checks.
"""
import logging

from fastapi import APIRouter, status

from accountguard.database.connections import get_mongo_client
from accountguard.database.databases import auth_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("", status_code=status.HTTP_200_OK, summary="Liveness check")
async def health_check():
    """Returns 200 while the process is serving requests."""
    return {"status": "healthy"}


@router.get("/ready", status_code=status.HTTP_200_OK, summary="Readiness check")
async def readiness_check():
    """
    Ping MongoDB and confirm the unique email index is in place.

    Logins stay available without the index, but email uniqueness is only
    guaranteed once it exists, so its absence reports ``degraded``.
    """
    checks = {"mongodb": "unknown", "email_index": "unknown"}

    try:
        client = await get_mongo_client()
        await client.admin.command("ping")
        checks["mongodb"] = "healthy"

        accounts = client[auth_db.DB_NAME][auth_db.Collections.ACCOUNTS]
        indexes = await accounts.index_information()
        unique_email = any(
            info.get("unique") and info["key"][0][0] == "email"
            for info in indexes.values()
        )
        checks["email_index"] = "healthy" if unique_email else "missing"
    except Exception as e:
        logger.warning("Readiness check failed: %s", e)
        if checks["mongodb"] == "unknown":
            checks["mongodb"] = f"unhealthy: {e}"
        else:
            checks["email_index"] = f"unhealthy: {e}"

    return {
        "status": "healthy" if all(v == "healthy" for v in checks.values()) else "degraded",
        "checks": checks,
    }
