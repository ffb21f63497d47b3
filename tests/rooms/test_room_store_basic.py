import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from directory_service.schemas import RoomCreate, RoomSearchQuery
from directory_service.store import InMemoryRoomStore, build_store, new_room_id


@pytest.fixture
def store():
    return InMemoryRoomStore()


def make_room(**overrides) -> RoomCreate:
    fields = {
        "block_name": "Block E",
        "floor_number": 0,
        "room_number": "G01",
        "department_name": "Mathematics",
        "capacity": 12,
    }
    fields.update(overrides)
    return RoomCreate(**fields)


def test_seeded_store_has_five_rooms_and_version_zero(store):
    assert len(store.list()) == 5
    assert store.sync_version() == 0


def test_empty_store():
    store = InMemoryRoomStore(seed=False)
    assert store.list() == []
    assert store.search(RoomSearchQuery()) == []


def test_create_assigns_id_and_timestamp(store):
    room = store.create(make_room())
    assert room.id.startswith("room_")
    assert room.created_at > 0
    assert room.block_name == "Block E"
    assert room.floor_number == 0
    assert room.capacity == 12
    assert store.get(room.id) == room
    assert store.sync_version() == 1


def test_generated_ids_are_unique():
    ids = {new_room_id() for _ in range(200)}
    assert len(ids) == 200


def test_returned_rooms_are_copies(store):
    room = store.get("room_001")
    room.capacity = 999
    assert store.get("room_001").capacity == 30


def test_update_merges_and_bumps_version(store):
    updated = store.update("room_001", {"capacity": 31})
    assert updated.capacity == 31
    assert updated.department_name == "Computer Science"
    assert store.sync_version() == 1


def test_update_missing_room_keeps_version(store):
    assert store.update("nope", {"capacity": 1}) is None
    assert store.sync_version() == 0


def test_delete_twice(store):
    assert store.delete("room_001") is True
    assert store.delete("room_001") is False
    assert store.get("room_001") is None
    assert store.sync_version() == 1


def test_search_without_filters_returns_everything(store):
    assert len(store.search(RoomSearchQuery())) == 5


def test_search_department_substring(store):
    rooms = store.search(RoomSearchQuery(department_name="comp"))
    assert {r.department_name for r in rooms} == {"Computer Science"}


def test_search_floor_exact(store):
    rooms = store.search(RoomSearchQuery(floor_number=1))
    assert {r.id for r in rooms} == {"room_001", "room_002"}


def test_search_floor_zero_is_a_constraint(store):
    store.create(make_room())
    rooms = store.search(RoomSearchQuery(floor_number=0))
    assert [r.room_number for r in rooms] == ["G01"]


def test_search_room_number_is_case_insensitive(store):
    store.create(make_room())
    rooms = store.search(RoomSearchQuery(room_number="g0"))
    assert [r.room_number for r in rooms] == ["G01"]


def test_build_store_rejects_unknown_backend():
    with pytest.raises(ValueError):
        build_store("mongo")


def test_build_store_memory():
    assert isinstance(build_store("memory"), InMemoryRoomStore)
