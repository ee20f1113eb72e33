"""
MongoDB repository for journal entries and learned mood patterns.

This module provides database operations for:
- Reading journal entries (read-only for the forecaster)
- Persisting and reloading personal patterns
- Persisting the detected occupation in the user profile
"""

import os
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import pymongo
from pymongo import MongoClient, ReplaceOne
from pymongo.errors import OperationFailure, PyMongoError, ServerSelectionTimeoutError
import certifi

from moodcast.core.models import JournalEntry, OccupationType, PersonalPattern

logger = logging.getLogger(__name__)

# ============================================================================
# CONSTANTS
# ============================================================================

DATABASE_NAME = "moodcast"
ENTRIES_COLLECTION_NAME = "journal_entries"
PATTERNS_COLLECTION_NAME = "mood_patterns"
PROFILE_COLLECTION_NAME = "user_profile"
PROFILE_ID = "profile"
CONNECTION_TIMEOUT_MS = 10000


# ============================================================================
# EXCEPTIONS
# ============================================================================

class MongoDBConnectionError(Exception):
    """Raised when MongoDB connection fails."""
    pass


class MongoDBOperationError(Exception):
    """Raised when database operations fail."""
    pass


# ============================================================================
# DATABASE CONNECTION
# ============================================================================

class DatabaseConfig:
    """Encapsulates MongoDB connection configuration."""

    def __init__(self, uri: Optional[str] = None):
        """
        Args:
            uri: MongoDB connection URI (defaults to MONGODB_URI env var)

        Raises:
            ValueError: If URI not provided and env var not set
        """
        self.uri = uri or os.environ.get("MONGODB_URI")
        if not self.uri:
            raise ValueError("MONGODB_URI environment variable not set")

    def get_client(self) -> MongoClient:
        """
        Creates a MongoDB client with the certifi CA bundle.

        Raises:
            MongoDBConnectionError: If connection fails.
        """
        try:
            client = MongoClient(
                self.uri,
                tlsCAFile=certifi.where(),
                serverSelectionTimeoutMS=CONNECTION_TIMEOUT_MS,
                connectTimeoutMS=CONNECTION_TIMEOUT_MS,
            )
            client.admin.command('ping')
            logger.info("[OK] MongoDB connected successfully")
            return client
        except ServerSelectionTimeoutError:
            logger.error("MongoDB connection timeout")
            raise MongoDBConnectionError("Connection timeout") from None
        except OperationFailure as e:
            logger.error(f"MongoDB authentication failed: {e}")
            raise MongoDBConnectionError(f"Authentication failed: {e}") from None
        except Exception as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise MongoDBConnectionError(str(e)) from e


def connect(uri: Optional[str] = None) -> pymongo.database.Database:
    """
    Opens the moodcast database.

    Raises:
        MongoDBConnectionError: Missing URI or unreachable server.
    """
    try:
        config = DatabaseConfig(uri)
    except ValueError as e:
        raise MongoDBConnectionError(str(e)) from e
    return config.get_client()[DATABASE_NAME]


# ============================================================================
# REPOSITORY
# ============================================================================

class MoodRepository:
    """
    Journal and pattern persistence over three collections.

    Satisfies the pattern store's repository contract.
    """

    def __init__(self, database: pymongo.database.Database):
        self.entries = database[ENTRIES_COLLECTION_NAME]
        self.patterns = database[PATTERNS_COLLECTION_NAME]
        self.profile = database[PROFILE_COLLECTION_NAME]

    # ------------------------------------------------------------------
    # Journal entries
    # ------------------------------------------------------------------

    def load_entries(self, since: Optional[datetime] = None, limit: int = 0) -> List[JournalEntry]:
        """
        Loads journal entries, newest first.

        Raises:
            MongoDBOperationError: If the query fails.
        """
        query: Dict[str, Any] = {}
        if since is not None:
            query["createdAt"] = {"$gte": since}
        try:
            cursor = self.entries.find(query).sort("createdAt", pymongo.DESCENDING)
            if limit:
                cursor = cursor.limit(limit)
            docs = list(cursor)
        except PyMongoError as e:
            logger.error(f"Failed to load journal entries: {e}")
            raise MongoDBOperationError(f"Load entries failed: {e}") from e

        entries = []
        for doc in docs:
            try:
                entries.append(JournalEntry.from_dict(doc))
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed journal entry {doc.get('_id')}: {e}")
        logger.info(f"[OK] Loaded {len(entries)} journal entries")
        return entries

    # ------------------------------------------------------------------
    # Patterns
    # ------------------------------------------------------------------

    def save_patterns(self, patterns: List[PersonalPattern]) -> None:
        """
        Replaces the stored pattern set.

        Patterns are upserted by id first; documents no longer in the set are
        removed only once every upsert has succeeded.

        Raises:
            MongoDBOperationError: If the write fails.
        """
        try:
            if patterns:
                self.patterns.bulk_write([
                    ReplaceOne({"id": p.id}, p.to_document(), upsert=True)
                    for p in patterns
                ])
            self.patterns.delete_many({"id": {"$nin": [p.id for p in patterns]}})
            logger.info(f"[OK] Saved {len(patterns)} patterns")
        except PyMongoError as e:
            logger.error(f"Failed to save patterns: {e}")
            raise MongoDBOperationError(f"Save patterns failed: {e}") from e

    def load_patterns(self) -> List[PersonalPattern]:
        try:
            docs = list(self.patterns.find({}))
        except PyMongoError as e:
            logger.error(f"Failed to load patterns: {e}")
            raise MongoDBOperationError(f"Load patterns failed: {e}") from e

        patterns = []
        for doc in docs:
            try:
                patterns.append(PersonalPattern.from_document(doc))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping malformed pattern {doc.get('_id')}: {e}")
        return patterns

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def save_occupation(self, occupation: Optional[OccupationType]) -> None:
        try:
            self.profile.update_one(
                {"_id": PROFILE_ID},
                {"$set": {
                    "occupationType": occupation.value if occupation else None,
                    "updatedAt": datetime.now(),
                }},
                upsert=True,
            )
        except PyMongoError as e:
            logger.error(f"Failed to save occupation: {e}")
            raise MongoDBOperationError(f"Save occupation failed: {e}") from e

    def load_occupation(self) -> Optional[OccupationType]:
        try:
            doc = self.profile.find_one({"_id": PROFILE_ID})
        except PyMongoError as e:
            logger.error(f"Failed to load occupation: {e}")
            raise MongoDBOperationError(f"Load occupation failed: {e}") from e

        value = (doc or {}).get("occupationType")
        if not value:
            return None
        try:
            return OccupationType(value)
        except ValueError:
            logger.warning(f"Unknown stored occupation: {value!r}")
            return None
