"""
accountguard API - FastAPI application

Account security for the LearnHub platform: credential checks with lockout,
session tokens, password recovery, email verification and two-factor auth.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from accountguard.config import get_settings
from accountguard.core.logging import configure_logging
from accountguard.database.connections import close_connections, get_mongo_client
from accountguard.database.databases import auth_db
from accountguard.database.indexes import create_indexes
from accountguard.routers import admin, auth, health
from accountguard.routers.errors import register_exception_handlers

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    
    Startup:
    - Configure logging
    - Create indexes on the accounts collection
    
    Shutdown:
    - Close the database connection
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting up accountguard API...")

    if not settings.jwt_access_secret or not settings.jwt_refresh_secret:
        logger.warning("JWT signing secrets are not configured; logins will fail")
    elif settings.jwt_access_secret == settings.jwt_refresh_secret:
        logger.warning("Access and refresh tokens share a signing secret")
    
    try:
        client = await get_mongo_client()
        await create_indexes(client[auth_db.DB_NAME])
        logger.info("Account indexes created")
    except Exception as e:
        logger.warning("Database initialization warning: %s", e)
    
    yield
    
    logger.info("Shutting down accountguard API...")
    await close_connections()


app = FastAPI(
    title="accountguard API",
    description="""
## LearnHub account security API

### Features
- **Login**: bcrypt password check with account lockout after repeated failures
- **Tokens**: JWT access and refresh tokens, upgraded after a second factor
- **Recovery**: one-time password reset and email verification tokens
- **Two-factor**: TOTP enrollment with single-use recovery codes

### Authentication
Protected endpoints take the access token as a bearer token:
```
Authorization: Bearer <access_token>
```
    """,
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",  # React dev server
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(admin.router)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "accountguard API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
