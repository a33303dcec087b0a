from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, Header, status
from jose import JWTError, jwt

from config import Settings, get_settings

ALGORITHM = "HS256"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def check_credentials(username: str, password: str, settings: Settings) -> bool:
    if not settings.admin_user or not settings.admin_password:
        return False
    return username == settings.admin_user and password == settings.admin_password


def create_access_token(data: dict, settings: Settings, expires_delta: timedelta | None = None):
    """
    Creates a new JWT access token signed with SECRET_KEY.
    """
    if not settings.secret_key:
        raise RuntimeError("SECRET_KEY is not configured")
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


async def get_current_user(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
):
    """
    Dependency returning the user named in the bearer token.
    Raises 401 if the header is missing or the token is invalid.
    """
    if authorization is None:
        raise _unauthorized("Authorization header missing")
    try:
        token_type, token = authorization.split()
    except ValueError:
        raise _unauthorized("Invalid token")
    if token_type.lower() != "bearer":
        raise _unauthorized("Invalid token type")
    if not settings.secret_key:
        raise _unauthorized("Invalid token")

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        raise _unauthorized("Invalid token")

    username = payload.get("sub")
    if username is None or username != settings.admin_user:
        raise _unauthorized("Invalid token")
    return username
