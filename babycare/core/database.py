import logging
from urllib.parse import urlparse

import databases

from babycare.core.config import settings

# Get logger
logger = logging.getLogger(__name__)

def log_database_config(database_url: str):
    """Log database configuration details for debugging."""
    parsed = urlparse(database_url)
    logger.debug(f"Database scheme: {parsed.scheme}")
    logger.debug(f"Database path: {parsed.path or parsed.netloc}")

def create_database(database_url: str = None) -> databases.Database:
    """
    Create the async database handle for the local store.

    The handle is not connected here; the store engine connects it during
    initialization and owns it for the rest of the process.
    """
    database_url = database_url or settings.DATABASE_URL
    log_database_config(database_url)
    try:
        database = databases.Database(database_url)
        logger.debug("Database object created successfully")
    except Exception as e:
        logger.error(f"Failed to create database object: {e}")
        logger.error(f"Exception type: {type(e).__name__}")
        raise
    return database
