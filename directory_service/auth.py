import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Mapping, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from . import config
from .store import now_ms

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
STUDENT_ROLE = "student"

SEED_STUDENTS = ("STU001", "STU002", "STU003")
SEED_ADMINS = {
    "admin1": "admin123",
    "admin2": "secure456",
}

# --- Password hashing ---
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

security = HTTPBearer(auto_error=False)


def auth_error(status_code: int, message: str) -> HTTPException:
    """
    Build an HTTPException rendered as ``{"success": false, "message": ...}``.
    """
    return HTTPException(status_code=status_code, detail={"success": False, "message": message})


class AccountRegistry:
    """
    Static credential tables for students and admins.

    Students are identified by registration number alone. Admin passwords
    are hashed when the registry is built and never stored in plaintext.
    Neither table changes at runtime.

    Parameters
    ----------
    students : Iterable[str]
        Allowed registration numbers.
    admins : Mapping[str, str]
        Admin id to plaintext password.
    """

    def __init__(self, students: Iterable[str] = SEED_STUDENTS, admins: Mapping[str, str] = SEED_ADMINS):
        created_at = now_ms()
        self.students: Dict[str, int] = {reg: created_at for reg in students}
        self._admin_hashes: Dict[str, str] = {
            admin_id: pwd_context.hash(password) for admin_id, password in admins.items()
        }

    def authenticate_student(self, registration_number: str) -> bool:
        return registration_number in self.students

    def authenticate_admin(self, admin_id: str, password: str) -> bool:
        """
        Check an admin id/password pair.

        Parameters
        ----------
        admin_id : str
            Identifier supplied by the client.
        password : str
            Plaintext password supplied by the client.

        Returns
        -------
        bool
            True only if ``admin_id`` exists and ``password`` matches it exactly.
        """
        hashed = self._admin_hashes.get(admin_id)
        if hashed is None:
            return False
        return pwd_context.verify(password, hashed)


# ---------- Tokens ----------

def issue_token(role: str, identifier: str, signed: Optional[bool] = None) -> str:
    """
    Issue a login token for ``identifier`` acting as ``role``.

    By default the token is the plain string ``<role>_<identifier>_<epoch-ms>``
    and carries no integrity protection. With ``SIGNED_TOKENS=1`` it is
    ``<role>_<jwt>``, where the HS256 JWT holds ``sub``, ``role``, ``iat``
    and ``exp``. Both forms start with the role prefix.

    Parameters
    ----------
    role : str
        ``"admin"`` or ``"student"``.
    identifier : str
        Admin id or registration number.
    signed : Optional[bool]
        Override for the configured token mode.

    Returns
    -------
    str
        The token string.
    """
    if signed is None:
        signed = config.SIGNED_TOKENS
    if not signed:
        return f"{role}_{identifier}_{now_ms()}"

    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": identifier,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
    }
    return f"{role}_{jwt.encode(payload, config.SECRET_KEY, algorithm=config.ALGORITHM)}"


def decode_token(token: str, signed: Optional[bool] = None) -> Optional[Dict[str, Any]]:
    """
    Extract the claims carried by a token.

    Returns
    -------
    Optional[Dict[str, Any]]
        ``{"username", "role"}`` or None if the token is malformed, or, in
        signed mode, fails signature/expiry checks.
    """
    if signed is None:
        signed = config.SIGNED_TOKENS
    role, sep, rest = token.partition("_")
    if not sep:
        return None

    if not signed:
        identifier, _, _ = rest.rpartition("_")
        return {"username": identifier or rest, "role": role}

    try:
        payload = jwt.decode(rest, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        return None
    username = payload.get("sub")
    token_role = payload.get("role")
    if username is None or token_role != role:
        return None
    return {"username": username, "role": token_role}


def admin_claims(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Return the caller's claims if ``token`` is an admin token, else None.

    In plain mode any token starting with ``admin_`` qualifies, including a
    bare ``admin_``. In signed mode the JWT after the prefix must also
    verify and carry the admin role.
    """
    if not token or not token.startswith(f"{ADMIN_ROLE}_"):
        return None
    claims = decode_token(token)
    if claims is None or claims["role"] != ADMIN_ROLE:
        return None
    return claims


async def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Dict[str, Any]:
    """
    Dependency gating admin-only room mutations.

    Returns
    -------
    Dict[str, Any]
        Claims of the caller: 'username' and 'role'.

    Raises
    ------
    HTTPException
        403 if the header is missing or the token is not an admin token.
    """
    claims = admin_claims(credentials.credentials if credentials else None)
    if claims is None:
        logger.warning("Rejected admin request without a valid admin token")
        raise auth_error(status.HTTP_403_FORBIDDEN, "Admin access required")
    return claims
