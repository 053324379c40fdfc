"""
Logging setup shared by the API process.
"""
import logging


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with the application format."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
