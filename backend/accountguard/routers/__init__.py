"""
API Routers module.
"""
from accountguard.routers import admin, auth, health

__all__ = ["admin", "auth", "health"]
