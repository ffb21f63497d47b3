import abc
import logging
import secrets
import string
import threading
import time
from typing import Dict, List, Optional

from . import config
from .schemas import Room, RoomCreate, RoomSearchQuery

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase

SEED_ROOMS = [
    {"id": "room_001", "block_name": "Block A", "floor_number": 1, "room_number": "101",
     "department_name": "Computer Science", "capacity": 30},
    {"id": "room_002", "block_name": "Block A", "floor_number": 1, "room_number": "102",
     "department_name": "Electronics", "capacity": 25},
    {"id": "room_003", "block_name": "Block B", "floor_number": 2, "room_number": "201",
     "department_name": "Mechanical Engineering", "capacity": 35},
    {"id": "room_004", "block_name": "Block B", "floor_number": 2, "room_number": "202",
     "department_name": "Civil Engineering", "capacity": 30},
    {"id": "room_005", "block_name": "Block C", "floor_number": 3, "room_number": "301",
     "department_name": "Computer Science", "capacity": 40},
]


def now_ms() -> int:
    return int(time.time() * 1000)


def new_room_id() -> str:
    """
    Generate a room identifier: creation time plus a random base36 suffix.

    Returns
    -------
    str
        Identifier of the form ``room_<epoch-ms>_<9 chars>``.
    """
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"room_{now_ms()}_{suffix}"


def seed_rooms() -> List[Room]:
    created_at = now_ms()
    return [Room(created_at=created_at, **fields) for fields in SEED_ROOMS]


def _contains(value: str, needle: Optional[str]) -> bool:
    if not needle:
        return True
    return needle.lower() in value.lower()


def room_matches(room: Room, query: RoomSearchQuery) -> bool:
    """
    Check a room against a search filter.

    Text fields match by case-insensitive substring, ``floor_number`` by
    exact equality. Fields missing from the filter (None or empty) are
    not constraints.
    """
    if query.floor_number is not None and room.floor_number != query.floor_number:
        return False
    return (
        _contains(room.department_name, query.department_name)
        and _contains(room.block_name, query.block_name)
        and _contains(room.room_number, query.room_number)
    )


class RoomStore(abc.ABC):
    """
    Owner of all room records and of the sync counter.

    Every successful mutation (create, update, delete) bumps the sync
    version by one; failed lookups leave it untouched. Rooms are handed
    out as copies.
    """

    @abc.abstractmethod
    def list(self) -> List[Room]:
        ...

    @abc.abstractmethod
    def get(self, room_id: str) -> Optional[Room]:
        ...

    @abc.abstractmethod
    def create(self, fields: RoomCreate) -> Room:
        ...

    @abc.abstractmethod
    def update(self, room_id: str, changes: dict) -> Optional[Room]:
        ...

    @abc.abstractmethod
    def delete(self, room_id: str) -> bool:
        ...

    @abc.abstractmethod
    def search(self, query: RoomSearchQuery) -> List[Room]:
        ...

    @abc.abstractmethod
    def sync_version(self) -> int:
        ...


class InMemoryRoomStore(RoomStore):
    """
    Process-local store. State is lost on restart and reseeded.
    """

    def __init__(self, seed: bool = True):
        self._rooms: Dict[str, Room] = {}
        self._version = 0
        self._lock = threading.Lock()
        if seed:
            for room in seed_rooms():
                self._rooms[room.id] = room

    def list(self) -> List[Room]:
        with self._lock:
            return [room.model_copy() for room in self._rooms.values()]

    def get(self, room_id: str) -> Optional[Room]:
        with self._lock:
            room = self._rooms.get(room_id)
            return room.model_copy() if room else None

    def create(self, fields: RoomCreate) -> Room:
        room = Room(id=new_room_id(), created_at=now_ms(), **fields.model_dump())
        with self._lock:
            self._rooms[room.id] = room
            self._version += 1
        logger.info("Created room %s (%s %s)", room.id, room.block_name, room.room_number)
        return room.model_copy()

    def update(self, room_id: str, changes: dict) -> Optional[Room]:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                return None
            updated = room.model_copy(update=changes)
            self._rooms[room_id] = updated
            self._version += 1
        logger.info("Updated room %s: %s", room_id, sorted(changes))
        return updated.model_copy()

    def delete(self, room_id: str) -> bool:
        with self._lock:
            if self._rooms.pop(room_id, None) is None:
                return False
            self._version += 1
        logger.info("Deleted room %s", room_id)
        return True

    def search(self, query: RoomSearchQuery) -> List[Room]:
        return [room for room in self.list() if room_matches(room, query)]

    def sync_version(self) -> int:
        with self._lock:
            return self._version


def build_store(backend: Optional[str] = None) -> RoomStore:
    """
    Build the room store selected by ``ROOM_STORE_BACKEND``.

    Parameters
    ----------
    backend : Optional[str]
        ``"memory"`` or ``"sql"``; defaults to the configured backend.

    Returns
    -------
    RoomStore
        A freshly initialised store.

    Raises
    ------
    ValueError
        If the backend name is unknown.
    """
    backend = backend or config.ROOM_STORE_BACKEND
    if backend == "memory":
        return InMemoryRoomStore()
    if backend == "sql":
        from .database import make_engine
        from .sql_store import SqlRoomStore

        return SqlRoomStore(make_engine(config.DATABASE_URL))
    raise ValueError(f"Unknown room store backend: {backend!r}")
