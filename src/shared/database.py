"""
Session storage: MongoDB (Motor async driver) and in-memory backends.

Sessions are stored whole, one document per session id. Saves replace the
stored aggregate, so concurrent writers to the same session follow
last-writer-wins semantics.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING, IndexModel

from .config import Settings, get_settings
from .models import Session, utc_now


class SessionStore(ABC):
    """Read/write access to Session aggregates keyed by id."""

    async def connect(self) -> None:
        """Open backend resources."""

    async def disconnect(self) -> None:
        """Release backend resources."""

    async def ensure_indexes(self) -> None:
        """Create backend indexes, if the backend has any."""

    @abstractmethod
    async def get(self, session_id: str) -> Optional[Session]:
        pass

    @abstractmethod
    async def get_all(self) -> list[Session]:
        pass

    @abstractmethod
    async def save(self, session: Session) -> Session:
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        pass


class InMemorySessionStore(SessionStore):
    """Process-local store; keeps serialized copies so callers never share objects."""

    def __init__(self):
        self._sessions: dict[str, dict[str, Any]] = {}

    async def get(self, session_id: str) -> Optional[Session]:
        data = self._sessions.get(session_id)
        return Session.model_validate(data) if data is not None else None

    async def get_all(self) -> list[Session]:
        return [Session.model_validate(data) for data in list(self._sessions.values())]

    async def save(self, session: Session) -> Session:
        session.updated_at = utc_now()
        self._sessions[session.id] = session.model_dump(mode="json")
        logger.debug(f"Session saved: {session.id}")
        return session

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None


class MongoSessionStore(SessionStore):
    """Async MongoDB session store."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client: Optional[AsyncIOMotorClient] = None
        self._collection: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """Establish database connection."""
        if self._client is not None:
            return

        logger.info(f"Connecting to MongoDB: {self.settings.mongodb_database}")
        self._client = AsyncIOMotorClient(self.settings.mongodb_uri)
        self._collection = self._client[self.settings.mongodb_database][
            self.settings.mongodb_collection
        ]

        # Verify connection
        await self._client.admin.command("ping")
        logger.info("MongoDB connection established")

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._collection = None
            logger.info("MongoDB connection closed")

    @property
    def collection(self) -> AsyncIOMotorCollection:
        """Get sessions collection."""
        if self._collection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._collection

    @staticmethod
    def _to_session(doc: dict[str, Any]) -> Session:
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return Session.model_validate(doc)

    async def get(self, session_id: str) -> Optional[Session]:
        """Get session by ID."""
        doc = await self.collection.find_one({"_id": session_id})
        return self._to_session(doc) if doc else None

    async def get_all(self) -> list[Session]:
        """Get all sessions, newest first."""
        cursor = self.collection.find({}).sort("created_at", DESCENDING)
        sessions = []
        async for doc in cursor:
            try:
                sessions.append(self._to_session(doc))
            except Exception as e:
                logger.error(f"Skipping unreadable session {doc.get('_id')}: {e}")
        return sessions

    async def save(self, session: Session) -> Session:
        """Replace the stored session (upsert)."""
        session.updated_at = utc_now()
        doc = session.model_dump(mode="json", exclude={"id"})
        await self.collection.replace_one({"_id": session.id}, doc, upsert=True)
        logger.debug(f"Session saved: {session.id}")
        return session

    async def delete(self, session_id: str) -> bool:
        """Delete a session and its documents."""
        result = await self.collection.delete_one({"_id": session_id})
        return result.deleted_count > 0

    async def ensure_indexes(self) -> None:
        """Create collection indexes."""
        indexes = [
            IndexModel([("status", ASCENDING)]),
            IndexModel([("created_at", DESCENDING)]),
            IndexModel([("documents.status", ASCENDING)]),
        ]
        await self.collection.create_indexes(indexes)
        logger.info("Database indexes created")


def create_session_store(settings: Optional[Settings] = None) -> SessionStore:
    """Build the store configured by `store_backend`."""
    settings = settings or get_settings()
    if settings.store_backend == "memory":
        return InMemorySessionStore()
    return MongoSessionStore(settings)
