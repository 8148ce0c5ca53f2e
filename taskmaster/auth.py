# PURPOSE: request identity. There are no passwords or tokens: the client
# sends its device fingerprint in a header and that fingerprint *is* the
# credential. Anyone who can read or guess a device id acts as that user.

import hmac

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from .config import settings
from .db_models import UserDB
from .store_db import get_db, get_user_by_device_id


def device_id_from_request(request: Request) -> str | None:
    value = request.headers.get(settings.DEVICE_ID_HEADER)
    if value is None:
        return None
    value = value.strip()
    return value or None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> UserDB:
    """Load the user registered for the request's device id, else 401."""
    cred_error = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
    )
    device_id = device_id_from_request(request)
    if device_id is None:
        raise cred_error
    user = get_user_by_device_id(db, device_id)
    if user is None:
        raise cred_error
    return user


def require_cron_secret(authorization: str | None = Header(default=None)) -> None:
    """Guard for scheduler-only endpoints: `Authorization: Bearer <CRON_SECRET>`."""
    expected = settings.CRON_SECRET
    if not expected or not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    if not hmac.compare_digest(authorization.encode("utf-8"), f"Bearer {expected}".encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
