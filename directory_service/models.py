from sqlalchemy import BigInteger, Column, Integer, String

from .database import Base


class RoomRecord(Base):
    """
    SQLAlchemy model representing a room directory entry.

    Attributes
    ----------
    seq : int
        Surrogate primary key; preserves insertion order for listings.
    id : str
        Public room identifier (``room_<epoch-ms>_<suffix>``), unique.
    block_name : str
        Building block, e.g. 'Block A'.
    floor_number : int
        Floor the room is on.
    room_number : str
        Room number within the block, e.g. '101'.
    department_name : str
        Department the room belongs to.
    capacity : int
        Optional seat count.
    created_at : int
        Creation time in epoch milliseconds.
    """
    __tablename__ = "rooms"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, nullable=False, index=True)
    block_name = Column(String(100), nullable=False)
    floor_number = Column(Integer, nullable=False)
    room_number = Column(String(50), nullable=False)
    department_name = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=True)
    created_at = Column(BigInteger, nullable=False)


class SyncState(Base):
    """
    Single-row table holding the room sync version.
    """
    __tablename__ = "sync_state"

    id = Column(Integer, primary_key=True)
    version = Column(Integer, nullable=False, default=0)
