"""
Auth database configuration.
Stores account identity and credential data.
"""

DB_NAME = "auth_db"


class Collections:
    """Collection names in auth_db."""
    ACCOUNTS = "accounts"
