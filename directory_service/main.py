import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security.utils import get_authorization_scheme_param
from starlette.exceptions import HTTPException as StarletteHTTPException

from common.cache import cache_rooms, drop_cached_rooms, get_cached_rooms

from . import config, schemas
from .auth import (
    ADMIN_ROLE,
    STUDENT_ROLE,
    AccountRegistry,
    admin_claims,
    auth_error,
    issue_token,
    require_admin,
)
from .rate_limiter import login_rate_limiter
from .store import RoomStore, build_store

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Room Directory Service", version="1.0.0")
app.state.store = build_store()
app.state.accounts = AccountRegistry()

router = APIRouter(prefix="/api")

# 400 messages for body validation failures on the login routes
LOGIN_VALIDATION_MESSAGES = {
    "/api/auth/student-login": "Registration number is required",
    "/api/auth/admin-login": "Admin ID and password are required",
}


def get_store(request: Request) -> RoomStore:
    return request.app.state.store


def get_accounts(request: Request) -> AccountRegistry:
    return request.app.state.accounts


# ---------- Error handling ----------

ADMIN_METHODS = ("POST", "PATCH", "DELETE")


def is_admin_route(request: Request) -> bool:
    path = request.url.path
    return request.method in ADMIN_METHODS and (path == "/api/rooms" or path.startswith("/api/rooms/"))


def bearer_token(request: Request) -> Optional[str]:
    scheme, token = get_authorization_scheme_param(request.headers.get("Authorization"))
    if scheme.lower() != "bearer":
        return None
    return token


def error_response(request: Request, status_code: int, detail) -> JSONResponse:
    """
    Render an error in the service envelope.

    ``detail`` may be a dict (merged as-is, e.g. ``{"success": False,
    "message": ...}`` from the auth routes) or a string (exposed as
    ``error``).
    """
    content = {
        "service": config.SERVICE_NAME,
        "path": request.url.path,
        "method": request.method,
        "status_code": status_code,
    }
    if isinstance(detail, dict):
        content.update(detail)
    else:
        content["error"] = detail
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(request, exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # FastAPI decodes the JSON body before resolving require_admin, so a
    # malformed body on an admin route must still be gated here first.
    if is_admin_route(request) and admin_claims(bearer_token(request)) is None:
        logger.warning("Rejected admin request without a valid admin token")
        return error_response(
            request,
            status.HTTP_403_FORBIDDEN,
            {"success": False, "message": "Admin access required"},
        )

    errors = [
        {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    login_message = LOGIN_VALIDATION_MESSAGES.get(request.url.path)
    if login_message is not None:
        detail = {"success": False, "message": login_message, "errors": errors}
    elif request.method == "POST":
        detail = {"error": "Missing required fields", "errors": errors}
    else:
        detail = {"error": "Invalid room fields", "errors": errors}
    return error_response(request, status.HTTP_400_BAD_REQUEST, detail)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


@app.get("/")
def root():
    """
    Health-check endpoint for the Room Directory service.

    Returns
    -------
    dict
        A small JSON payload indicating that the service is running.
    """
    return {"service": config.SERVICE_NAME, "status": "running"}


@router.get("/ping")
def ping():
    return {"message": config.PING_MESSAGE}


# ---------- Login ----------

@router.post(
    "/auth/student-login",
    response_model=schemas.AuthResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(login_rate_limiter)],
)
def student_login(body: schemas.StudentLogin, accounts: AccountRegistry = Depends(get_accounts)):
    """
    Log a student in by registration number.

    Parameters
    ----------
    body : StudentLogin
        Registration number to check against the allow-list.
    accounts : AccountRegistry
        Static credential tables.

    Returns
    -------
    AuthResponse
        ``success`` and a ``student_`` token.

    Raises
    ------
    HTTPException
        401 if the registration number is not on the allow-list.
    """
    if not accounts.authenticate_student(body.registration_number):
        logger.warning("Failed student login for %s", body.registration_number)
        raise auth_error(status.HTTP_401_UNAUTHORIZED, "Invalid registration number")
    return {"success": True, "token": issue_token(STUDENT_ROLE, body.registration_number)}


@router.post(
    "/auth/admin-login",
    response_model=schemas.AuthResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(login_rate_limiter)],
)
def admin_login(body: schemas.AdminLogin, accounts: AccountRegistry = Depends(get_accounts)):
    """
    Log an admin in by id and password.

    Raises
    ------
    HTTPException
        401 if the id is unknown or the password does not match.
    """
    if not accounts.authenticate_admin(body.admin_id, body.password):
        logger.warning("Failed admin login for %s", body.admin_id)
        raise auth_error(status.HTTP_401_UNAUTHORIZED, "Invalid admin credentials")
    return {"success": True, "token": issue_token(ADMIN_ROLE, body.admin_id)}


# ---------- Read rooms (public) ----------

@router.get("/rooms", response_model=schemas.RoomsResponse)
def list_rooms(store: RoomStore = Depends(get_store)):
    """
    Return every room in insertion order.

    The listing is cached in Redis under the current sync version when
    REDIS_URL is configured; any mutation moves readers to a new key.
    """
    version = store.sync_version()
    cached = get_cached_rooms(version)
    if cached is not None:
        return cached

    data = schemas.RoomsResponse(rooms=store.list()).model_dump(by_alias=True)
    # don't cache a listing that raced with a mutation
    if store.sync_version() == version:
        cache_rooms(version, data, ttl_seconds=config.ROOMS_CACHE_TTL_SECONDS)
    return data


def parse_floor_number(raw: Optional[str]) -> Optional[int]:
    """
    Parse the ``floorNumber`` query parameter.

    Returns
    -------
    Optional[int]
        None when absent or blank.

    Raises
    ------
    HTTPException
        400 if the value is not an integer.
    """
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="floorNumber must be an integer",
        )


@router.get("/rooms/search", response_model=schemas.RoomsResponse)
def search_rooms(
    department_name: Optional[str] = Query(default=None, alias="departmentName"),
    block_name: Optional[str] = Query(default=None, alias="blockName"),
    floor_number: Optional[str] = Query(default=None, alias="floorNumber"),
    room_number: Optional[str] = Query(default=None, alias="roomNumber"),
    store: RoomStore = Depends(get_store),
):
    """
    Search rooms with optional filters.

    Behavior
    --------
    - Every supplied filter must match (conjunction).
    - departmentName, blockName, roomNumber: case-insensitive substring.
    - floorNumber: exact integer match.
    - Blank or missing parameters are ignored.

    Returns
    -------
    RoomsResponse
        Rooms matching the filters.
    """
    query = schemas.RoomSearchQuery(
        department_name=department_name,
        block_name=block_name,
        floor_number=parse_floor_number(floor_number),
        room_number=room_number,
    )
    return {"rooms": store.search(query)}


@router.get("/rooms/{room_id}", response_model=schemas.RoomResponse)
def get_room(room_id: str, store: RoomStore = Depends(get_store)):
    """
    Retrieve a single room by its ID.

    Raises
    ------
    HTTPException
        404 if the room does not exist.
    """
    room = store.get(room_id)
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return {"room": room}


@router.get("/sync/version", response_model=schemas.SyncVersionResponse)
def get_sync_version(store: RoomStore = Depends(get_store)):
    return {"version": store.sync_version()}


# ---------- Mutate rooms (admin only) ----------

@router.post("/rooms", response_model=schemas.RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(
    room_in: schemas.RoomCreate,
    store: RoomStore = Depends(get_store),
    _: dict = Depends(require_admin),
):
    """
    Create a new room.

    Access
    ------
    - Requires an admin bearer token.

    Parameters
    ----------
    room_in : RoomCreate
        blockName, floorNumber, roomNumber, departmentName and optional
        capacity.
    store : RoomStore
        Room store of the running app.

    Returns
    -------
    RoomResponse
        The created room with its generated id and createdAt.
    """
    room = store.create(room_in)
    drop_cached_rooms()
    return {"room": room}


@router.patch("/rooms/{room_id}", response_model=schemas.RoomResponse)
def update_room(
    room_id: str,
    update_data: schemas.RoomUpdate,
    store: RoomStore = Depends(get_store),
    _: dict = Depends(require_admin),
):
    """
    Merge the supplied fields into an existing room.

    Access
    ------
    - Requires an admin bearer token.

    Raises
    ------
    HTTPException
        404 if the room does not exist.
    """
    room = store.update(room_id, update_data.changes())
    if room is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    drop_cached_rooms()
    return {"room": room}


@router.delete("/rooms/{room_id}", response_model=schemas.DeleteResponse)
def delete_room(
    room_id: str,
    store: RoomStore = Depends(get_store),
    _: dict = Depends(require_admin),
):
    """
    Permanently remove a room.

    Raises
    ------
    HTTPException
        404 if the room does not exist (including a second delete).
    """
    if not store.delete(room_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    drop_cached_rooms()
    return {"success": True}


app.include_router(router)
