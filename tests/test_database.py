import pytest
from pymongo.errors import ConfigurationError, OperationFailure

from ai_agent.database import DatabaseManager
from ai_agent.errors import ActionValidationError, DatabaseError, UnsupportedOperation
from ai_agent.models import DatabaseAction
from ai_agent.session import Session


class FakeInsertResult:
    def __init__(self, ids):
        self.inserted_ids = ids


class FakeCollection:
    def __init__(self):
        self.docs = []
        self.dropped = False

    def insert_many(self, docs):
        self.docs.extend(docs)
        return FakeInsertResult(list(range(len(docs))))

    def find(self, query):
        return [d for d in self.docs if all(d.get(k) == v for k, v in query.items())]

    def drop(self):
        self.dropped = True


class FakeDatabase:
    def __init__(self):
        self.collections = {}
        self.created = []

    def create_collection(self, name):
        if name in self.created:
            raise OperationFailure("collection already exists")
        self.created.append(name)

    def __getitem__(self, name):
        return self.collections.setdefault(name, FakeCollection())


class FakeMongoClient:
    instances = []

    def __init__(self, connection_string):
        self.connection_string = connection_string
        self.databases = {}
        self.closed = False
        FakeMongoClient.instances.append(self)

    def __getitem__(self, name):
        return self.databases.setdefault(name, FakeDatabase())

    def get_default_database(self):
        raise ConfigurationError("No default database defined")

    def close(self):
        self.closed = True


URI = "mongodb://localhost:27017"


@pytest.fixture
def manager(tmp_path):
    FakeMongoClient.instances = []
    return DatabaseManager(Session(cwd=str(tmp_path)), client_factory=FakeMongoClient)


def _action(action, **kwargs):
    return DatabaseAction(db_type="mongodb", action=action, connection_string=URI, collection="users", **kwargs)


def test_insert_then_query_reuses_connection(manager):
    inserted = manager.execute(_action("insert", data=[{"name": "Asha"}, {"name": "Ravi"}]))
    assert inserted == {"success": True, "inserted": 2}

    found = manager.execute(_action("query", query={"name": "Ravi"}))
    assert found["data"] == [{"name": "Ravi"}]
    assert len(FakeMongoClient.instances) == 1
    assert "test" in FakeMongoClient.instances[0].databases


def test_create_and_drop_collection_in_named_database(manager):
    manager.execute(_action("create-collection", database="shop"))
    manager.execute(_action("drop-collection", database="shop"))
    db = FakeMongoClient.instances[0].databases["shop"]
    assert db.created == ["users"]
    assert db.collections["users"].dropped is True


def test_driver_errors_are_wrapped(manager):
    manager.execute(_action("create-collection"))
    with pytest.raises(DatabaseError):
        manager.execute(_action("create-collection"))


def test_planned_engines_return_notice(manager):
    result = manager.execute(DatabaseAction(db_type="mysql", action="query"))
    assert result["success"] is False
    assert result["implemented"] is False
    assert result["message"] == "mysql operations not yet implemented"


def test_invalid_requests_raise(manager):
    with pytest.raises(UnsupportedOperation):
        manager.execute(DatabaseAction(db_type="redis", action="query"))
    with pytest.raises(UnsupportedOperation):
        manager.execute(_action("rename"))
    with pytest.raises(ActionValidationError):
        manager.execute(DatabaseAction(db_type="mongodb", action="query", collection="users"))
    with pytest.raises(ActionValidationError):
        manager.execute(_action("insert"))


def test_shutdown_closes_clients(manager):
    manager.execute(_action("query"))
    manager.session.registry.shutdown()
    assert FakeMongoClient.instances[0].closed is True
