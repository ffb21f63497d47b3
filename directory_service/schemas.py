from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base for every wire schema.

    Fields are declared in snake_case and exchanged as camelCase
    (``blockName``, ``floorNumber``...). Incoming bodies may use either.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Room schemas ----------

class RoomBase(CamelModel):
    """
    Descriptive fields of a room directory entry.

    Shared fields used when creating and reading rooms.
    """
    block_name: str = Field(..., min_length=1)
    floor_number: int
    room_number: str = Field(..., min_length=1)
    department_name: str = Field(..., min_length=1)
    capacity: Optional[int] = Field(default=None, ge=0)


class RoomCreate(RoomBase):
    """
    Schema for creating a new room.

    Unknown keys, including ``id`` and ``createdAt``, are ignored.
    """
    pass


class RoomUpdate(CamelModel):
    """
    Schema for partial updates to a room.

    Only fields present in the body are merged. ``capacity`` may be set to
    null to clear it; the other fields cannot be nulled.
    """
    block_name: Optional[str] = Field(default=None, min_length=1)
    floor_number: Optional[int] = None
    room_number: Optional[str] = Field(default=None, min_length=1)
    department_name: Optional[str] = Field(default=None, min_length=1)
    capacity: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        for name in ("block_name", "floor_number", "room_number", "department_name"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def changes(self) -> dict:
        """Return only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


class Room(RoomBase):
    """
    A stored room, as returned by the API.

    Extends RoomBase with the generated identifier and creation time
    (epoch milliseconds).
    """
    id: str
    created_at: int

    model_config = ConfigDict(from_attributes=True)


class RoomSearchQuery(CamelModel):
    """
    Conjunctive room filter. Absent fields are not constraints.
    """
    department_name: Optional[str] = None
    block_name: Optional[str] = None
    floor_number: Optional[int] = None
    room_number: Optional[str] = None


class RoomsResponse(CamelModel):
    rooms: List[Room]


class RoomResponse(CamelModel):
    room: Room


class DeleteResponse(CamelModel):
    success: bool = True


class SyncVersionResponse(CamelModel):
    version: int


# ---------- Auth schemas ----------

class StudentLogin(CamelModel):
    """
    Student login body.

    Attributes
    ----------
    registration_number : str
        Registration number checked against the student allow-list.
    """
    registration_number: str = Field(..., min_length=1)


class AdminLogin(CamelModel):
    """
    Admin login body.

    Attributes
    ----------
    admin_id : str
        Identifier from the admin table.
    password : str
        Plaintext password supplied by the client.
    """
    admin_id: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AuthResponse(CamelModel):
    """
    Login result. ``token`` is set on success, ``message`` on failure.
    """
    success: bool
    token: Optional[str] = None
    message: Optional[str] = None
