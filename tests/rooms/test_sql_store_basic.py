import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

os.environ.setdefault("TESTING", "1")

import pytest
from fastapi.testclient import TestClient

from directory_service import config
from directory_service.database import make_engine
from directory_service.main import app
from directory_service.schemas import RoomCreate, RoomSearchQuery
from directory_service.sql_store import SqlRoomStore
from directory_service.store import InMemoryRoomStore, build_store

client = TestClient(app)


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return SqlRoomStore(engine)


def make_room(**overrides) -> RoomCreate:
    fields = {
        "block_name": "Block Z",
        "floor_number": 5,
        "room_number": "5%A",
        "department_name": "Chemistry",
    }
    fields.update(overrides)
    return RoomCreate(**fields)


def test_seeded_in_insertion_order(store):
    assert [r.id for r in store.list()] == ["room_001", "room_002", "room_003", "room_004", "room_005"]
    assert store.sync_version() == 0


def test_create_get_and_version(store):
    room = store.create(make_room())
    assert room.id.startswith("room_")
    assert room.capacity is None
    assert store.get(room.id) == room
    assert store.list()[-1].id == room.id
    assert store.sync_version() == 1


def test_update_and_missing_update(store):
    updated = store.update("room_003", {"capacity": 36, "block_name": "Block B2"})
    assert updated.capacity == 36
    assert updated.block_name == "Block B2"
    assert updated.room_number == "201"
    assert store.update("missing", {"capacity": 1}) is None
    assert store.sync_version() == 1


def test_delete_twice(store):
    assert store.delete("room_005") is True
    assert store.delete("room_005") is False
    assert store.get("room_005") is None
    assert store.sync_version() == 1


def test_search_matches_in_memory_semantics(store):
    memory = InMemoryRoomStore()
    queries = [
        RoomSearchQuery(department_name="COMP"),
        RoomSearchQuery(floor_number=2),
        RoomSearchQuery(block_name="block a", room_number="10"),
        RoomSearchQuery(department_name="engineering", floor_number=2),
        RoomSearchQuery(department_name=""),
    ]
    for query in queries:
        assert [r.id for r in store.search(query)] == [r.id for r in memory.search(query)]


def test_search_wildcards_are_literal(store):
    store.create(make_room())
    assert [r.room_number for r in store.search(RoomSearchQuery(room_number="%"))] == ["5%A"]
    assert store.search(RoomSearchQuery(department_name="_")) == []


def test_state_survives_a_new_store_on_same_database(engine, store):
    room = store.create(make_room())
    store.delete("room_001")

    reopened = SqlRoomStore(engine)
    ids = [r.id for r in reopened.list()]
    assert "room_001" not in ids
    assert room.id in ids
    assert reopened.sync_version() == 2


def test_build_store_sql(monkeypatch):
    monkeypatch.setattr(config, "DATABASE_URL", "sqlite://")
    assert isinstance(build_store("sql"), SqlRoomStore)


def test_api_over_sql_store(store):
    app.state.store = store
    try:
        token = client.post(
            "/api/auth/admin-login", json={"adminId": "admin2", "password": "secure456"}
        ).json()["token"]
        headers = {"Authorization": f"Bearer {token}"}

        res = client.post(
            "/api/rooms",
            json={"blockName": "Block Z", "floorNumber": 5, "roomNumber": "501", "departmentName": "Chemistry"},
            headers=headers,
        )
        assert res.status_code == 201
        room_id = res.json()["room"]["id"]

        res = client.get("/api/rooms/search", params={"departmentName": "chem"})
        assert [r["id"] for r in res.json()["rooms"]] == [room_id]
        assert client.get("/api/sync/version").json() == {"version": 1}
    finally:
        app.state.store = InMemoryRoomStore()


def test_non_ascii_search_matches_in_memory_store(store):
    memory = InMemoryRoomStore()
    for target in (store, memory):
        target.create(make_room(department_name="Électronique Appliquée", room_number="É12"))

    for query in (
        RoomSearchQuery(department_name="élec"),
        RoomSearchQuery(department_name="APPLIQUÉE"),
        RoomSearchQuery(room_number="é1"),
    ):
        sql_hits = [r.department_name for r in store.search(query)]
        memory_hits = [r.department_name for r in memory.search(query)]
        assert sql_hits == memory_hits == ["Électronique Appliquée"]
