from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from bson import ObjectId
from pymongo import MongoClient
from pymongo.errors import ConfigurationError, PyMongoError

from .errors import ActionValidationError, DatabaseError, UnsupportedOperation
from .models import DatabaseAction
from .session import Session

logger = logging.getLogger(__name__)

# accepted, but only answered with a notice
PLANNED_DB_TYPES = ("mysql", "postgres", "sqlite")
MONGO_ACTIONS = ("create-collection", "insert", "query", "drop-collection")
DEFAULT_DATABASE = "test"


def _plain(document: Dict[str, Any]) -> Dict[str, Any]:
    return {k: str(v) if isinstance(v, ObjectId) else v for k, v in document.items()}


class DatabaseManager:
    """Database operations; MongoDB is the only driver wired in."""

    def __init__(self, session: Session, client_factory: Callable[[str], Any] = MongoClient):
        self.session = session
        self.client_factory = client_factory

    def execute(self, action: DatabaseAction) -> Dict[str, Any]:
        if action.db_type in PLANNED_DB_TYPES:
            logger.warning("%s operations not yet implemented", action.db_type)
            return {
                "success": False,
                "implemented": False,
                "message": f"{action.db_type} operations not yet implemented",
            }
        if action.db_type != "mongodb":
            raise UnsupportedOperation(f"Unsupported database type: {action.db_type}")
        try:
            return self._mongodb(action)
        except PyMongoError as exc:
            logger.error("Database error: %s", exc)
            raise DatabaseError(f"MongoDB {action.action} failed: {exc}") from exc

    def connect(self, connection_string: str) -> Any:
        registry = self.session.registry
        client = registry.lookup_database(connection_string)
        if client is None:
            client = self.client_factory(connection_string)
            registry.register_database(connection_string, client)
            logger.info("Connected to database: %s", connection_string)
        return client

    def _database(self, client: Any, name: Optional[str]) -> Any:
        if name:
            return client[name]
        try:
            return client.get_default_database()
        except ConfigurationError:
            return client[DEFAULT_DATABASE]

    def _mongodb(self, action: DatabaseAction) -> Dict[str, Any]:
        if action.action not in MONGO_ACTIONS:
            raise UnsupportedOperation(f"Unsupported MongoDB operation: {action.action}")
        if not action.connection_string:
            raise ActionValidationError("mongodb operations need 'connectionString'")
        if not action.collection:
            raise ActionValidationError(f"mongodb {action.action} needs 'collection'")

        db = self._database(self.connect(action.connection_string), action.database)
        name = action.collection
        if action.action == "create-collection":
            db.create_collection(name)
            return {"success": True, "message": f"Collection {name} created"}
        if action.action == "insert":
            if not action.data:
                raise ActionValidationError("mongodb insert needs 'data'")
            result = db[name].insert_many([dict(d) for d in action.data])
            return {"success": True, "inserted": len(result.inserted_ids)}
        if action.action == "query":
            docs = [_plain(doc) for doc in db[name].find(action.query)]
            return {"success": True, "data": docs}
        db[name].drop()
        return {"success": True, "message": f"Collection {name} dropped"}
