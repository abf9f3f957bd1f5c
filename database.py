"""
MongoDB connection.

`db` is None when DATABASE_URL is not configured; callers check for that
instead of catching connection errors at import time.
"""

import logging
from typing import Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import DATABASE_URL, DATABASE_NAME

logger = logging.getLogger(__name__)

_client: Optional[MongoClient] = None
db: Optional[Database] = None

if DATABASE_URL:
    _client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
    db = _client[DATABASE_NAME]
else:
    logger.warning("DATABASE_URL not set, running without a database")


def ping_database(database: Optional[Database] = None) -> bool:
    database = database if database is not None else db
    if database is None:
        return False
    try:
        database.command("ping")
        return True
    except PyMongoError as e:
        logger.error("Database ping failed: %s", e)
        return False
