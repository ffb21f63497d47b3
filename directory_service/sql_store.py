import logging
from typing import List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from .database import Base, make_sessionmaker
from .models import RoomRecord, SyncState
from .schemas import Room, RoomCreate, RoomSearchQuery
from .store import RoomStore, new_room_id, now_ms, seed_rooms

logger = logging.getLogger(__name__)

SYNC_STATE_ID = 1


class SqlRoomStore(RoomStore):
    """
    Durable room store backed by SQLAlchemy.

    Each operation runs in its own session. The sync version lives in the
    ``sync_state`` table and is bumped in the same transaction as the
    mutation it counts.

    Parameters
    ----------
    engine : Engine
        Engine for the target database. Tables are created if missing.
    seed : bool
        Insert the sample rooms when the database has never been used.
    """

    def __init__(self, engine: Engine, seed: bool = True):
        Base.metadata.create_all(bind=engine)
        self._sessions = make_sessionmaker(engine)
        with self._sessions() as db:
            if db.get(SyncState, SYNC_STATE_ID) is None:
                db.add(SyncState(id=SYNC_STATE_ID, version=0))
                if seed and db.query(RoomRecord).count() == 0:
                    for room in seed_rooms():
                        db.add(RoomRecord(**room.model_dump()))
                db.commit()

    @staticmethod
    def _bump(db: Session) -> None:
        db.query(SyncState).filter(SyncState.id == SYNC_STATE_ID).update(
            {SyncState.version: SyncState.version + 1}
        )

    @staticmethod
    def _find(db: Session, room_id: str) -> Optional[RoomRecord]:
        return db.query(RoomRecord).filter(RoomRecord.id == room_id).first()

    def list(self) -> List[Room]:
        with self._sessions() as db:
            records = db.query(RoomRecord).order_by(RoomRecord.seq).all()
            return [Room.model_validate(r) for r in records]

    def get(self, room_id: str) -> Optional[Room]:
        with self._sessions() as db:
            record = self._find(db, room_id)
            return Room.model_validate(record) if record else None

    def create(self, fields: RoomCreate) -> Room:
        record = RoomRecord(id=new_room_id(), created_at=now_ms(), **fields.model_dump())
        with self._sessions() as db:
            db.add(record)
            self._bump(db)
            db.commit()
            room = Room.model_validate(record)
        logger.info("Created room %s (%s %s)", room.id, room.block_name, room.room_number)
        return room

    def update(self, room_id: str, changes: dict) -> Optional[Room]:
        with self._sessions() as db:
            record = self._find(db, room_id)
            if record is None:
                return None
            for field, value in changes.items():
                setattr(record, field, value)
            self._bump(db)
            db.commit()
            room = Room.model_validate(record)
        logger.info("Updated room %s: %s", room_id, sorted(changes))
        return room

    def delete(self, room_id: str) -> bool:
        with self._sessions() as db:
            record = self._find(db, room_id)
            if record is None:
                return False
            db.delete(record)
            self._bump(db)
            db.commit()
        logger.info("Deleted room %s", room_id)
        return True

    def search(self, query: RoomSearchQuery) -> List[Room]:
        with self._sessions() as db:
            q = db.query(RoomRecord)
            if query.department_name:
                q = q.filter(RoomRecord.department_name.icontains(query.department_name, autoescape=True))
            if query.block_name:
                q = q.filter(RoomRecord.block_name.icontains(query.block_name, autoescape=True))
            if query.floor_number is not None:
                q = q.filter(RoomRecord.floor_number == query.floor_number)
            if query.room_number:
                q = q.filter(RoomRecord.room_number.icontains(query.room_number, autoescape=True))
            return [Room.model_validate(r) for r in q.order_by(RoomRecord.seq).all()]

    def sync_version(self) -> int:
        with self._sessions() as db:
            state = db.get(SyncState, SYNC_STATE_ID)
            return state.version
