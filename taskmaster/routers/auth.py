# PURPOSE: /auth (device sign-in), /auth/me

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..db_models import UserDB
from ..models import DeviceAuth, UserPublic
from ..rate_limit import auth_limit, limiter
from ..store_db import delete_user, get_db, resolve_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("", response_model=UserPublic)
@limiter.limit(auth_limit)
def authenticate_device(
    request: Request, response: Response, payload: DeviceAuth, db: Session = Depends(get_db)
):
    # First contact for a device creates its user; later calls return the same one
    user = resolve_user(db, payload.device_id)
    return user


@router.get("/me", response_model=UserPublic)
def me(user: UserDB = Depends(get_current_user)):
    return user


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
def forget_me(user: UserDB = Depends(get_current_user), db: Session = Depends(get_db)):
    # Tasks and push subscriptions go with the user
    delete_user(db, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
