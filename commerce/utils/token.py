from jose import jwt, JWTError
from datetime import timedelta
from typing import Optional, Tuple
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from commerce.config import settings
from commerce.utils.timestamps import utcnow

# tokens are issued by the auth service; this app only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()

    expire = utcnow() + (
        expires_delta
        if expires_delta
        else timedelta(minutes=settings.access_token_expire_minutes)
    )

    to_encode.update({"exp": expire})

    encoded_jwt = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.algorithm
    )
    return encoded_jwt


def decode_access_token(token: str):
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
        return payload
    except JWTError:
        return None


def _user_id_from_payload(payload: dict) -> int:
    user_id = payload.get("user_id") or payload.get("sub")

    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload"
        )

    try:
        return int(user_id)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload"
        )


def _decode_or_401(token: str) -> dict:
    payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def get_current_user_id(token: str = Depends(oauth2_scheme)) -> int:
    return _user_id_from_payload(_decode_or_401(token))


def get_current_admin_id(token: str = Depends(oauth2_scheme)) -> int:
    payload = _decode_or_401(token)
    user_id = _user_id_from_payload(payload)

    if payload.get("role") != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return user_id


def get_cart_owner(
    token: Optional[str] = Depends(optional_oauth2_scheme),
    x_guest_session: Optional[str] = Header(default=None),
) -> Tuple[Optional[int], Optional[str]]:
    """(user_id, guest_session_id); a bearer token wins over the guest header."""
    if token:
        return _user_id_from_payload(_decode_or_401(token)), None

    if x_guest_session:
        return None, x_guest_session

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Login or guest session required"
    )
