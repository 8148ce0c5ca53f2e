# PURPOSE: persistence for users (device identity), tasks and push subscriptions.
# Every public function commits its own single-row change; SQLAlchemy failures
# are rolled back and re-raised as StorageError.

from __future__ import annotations

import functools
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .db_models import PushSubscriptionDB, TaskDB, UserDB, now_utc
from .exceptions import StorageError, ValidationError
from .models import as_utc, is_valid_reminder_time

logger = logging.getLogger(__name__)


# --- Session dependency ----------------------------------------------------


def get_db():
    """Yield a SQLAlchemy session (used as a FastAPI dependency)."""
    from .db import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# --- Helpers ---------------------------------------------------------------


def _storage_errors(func):
    """Roll back and wrap SQLAlchemy failures; `db` is the first argument."""

    @functools.wraps(func)
    def wrapper(db: Session, *args, **kwargs):
        try:
            return func(db, *args, **kwargs)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("storage failure in %s", func.__name__, exc_info=True)
            raise StorageError(f"{func.__name__} failed") from exc

    return wrapper


def _check_reminder_time(reminder_time: Optional[str]) -> None:
    if reminder_time is not None and not is_valid_reminder_time(reminder_time):
        raise ValidationError("reminder_time must be HH:MM (24h)")


def _minute_start(moment: datetime) -> datetime:
    return moment.replace(second=0, microsecond=0)


# --- Users (identity resolver) ---------------------------------------------


@_storage_errors
def get_user_by_device_id(db: Session, device_id: str) -> Optional[UserDB]:
    return db.query(UserDB).filter(UserDB.device_id == device_id).one_or_none()


@_storage_errors
def resolve_user(db: Session, device_id: str) -> UserDB:
    """Return the user for `device_id`, creating it on first contact.

    The device id is a bearer credential: whoever presents it is that user.
    """
    if not device_id or not device_id.strip():
        raise ValidationError("device_id is required")
    existing = db.query(UserDB).filter(UserDB.device_id == device_id).one_or_none()
    if existing is not None:
        return existing

    now = now_utc()
    user = UserDB(device_id=device_id, created_at=now, updated_at=now)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # another request created the same device concurrently
        db.rollback()
        return db.query(UserDB).filter(UserDB.device_id == device_id).one()
    db.refresh(user)
    logger.info("created user id=%s for new device", user.id)
    return user


@_storage_errors
def delete_user(db: Session, user_id: str) -> bool:
    """Delete a user with all of its tasks and push subscriptions."""
    user = db.get(UserDB, user_id)
    if user is None:
        return False
    db.delete(user)
    db.commit()
    return True


# --- Tasks -----------------------------------------------------------------


@_storage_errors
def list_tasks(db: Session, user_id: str) -> List[TaskDB]:
    """Return the user's tasks, newest first."""
    return (
        db.query(TaskDB)
        .filter(TaskDB.user_id == user_id)
        .order_by(TaskDB.created_at.desc(), TaskDB.id.desc())
        .all()
    )


@_storage_errors
def create_task(
    db: Session,
    user_id: str,
    text: str,
    due_date: Optional[datetime] = None,
    reminder_time: Optional[str] = None,
) -> TaskDB:
    if not text or not text.strip():
        raise ValidationError("task text is required")
    _check_reminder_time(reminder_time)
    now = now_utc()
    row = TaskDB(
        user_id=user_id,
        text=text,
        completed=False,
        due_date=as_utc(due_date),
        reminder_time=reminder_time,
        created_at=now,
        updated_at=now,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@_storage_errors
def get_task(db: Session, task_id: str, *, user_id: Optional[str] = None) -> Optional[TaskDB]:
    """Fetch a single task; if user_id is given, enforce ownership."""
    query = db.query(TaskDB).filter(TaskDB.id == task_id)
    if user_id is not None:
        query = query.filter(TaskDB.user_id == user_id)
    return query.one_or_none()


@_storage_errors
def update_task(db: Session, task_id: str, data, *, user_id: Optional[str] = None) -> Optional[TaskDB]:
    """Partial update from a TaskUpdate. Returns updated row or None if not found.

    text/completed are only overwritten with non-null values. due_date and
    reminder_time are overwritten whenever they were sent, so an explicit
    null clears them; fields that were not sent are left alone.
    """
    row = get_task(db, task_id, user_id=user_id)
    if not row:
        return None
    sent = data.model_fields_set
    if data.text is not None and not data.text.strip():
        raise ValidationError("task text is required")
    if "reminder_time" in sent:
        _check_reminder_time(data.reminder_time)

    if data.text is not None:
        row.text = data.text
    if data.completed is not None:
        row.completed = data.completed
    if "due_date" in sent or "reminder_time" in sent:
        if "due_date" in sent:
            row.due_date = as_utc(data.due_date)
        if "reminder_time" in sent:
            row.reminder_time = data.reminder_time
        # a rescheduled task may be reminded again
        row.notified_at = None
    row.updated_at = now_utc()
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@_storage_errors
def delete_task(db: Session, task_id: str, *, user_id: Optional[str] = None) -> bool:
    """Delete a task; returns True if deleted, False if not found/forbidden."""
    row = get_task(db, task_id, user_id=user_id)
    if not row:
        return False
    db.delete(row)
    db.commit()
    return True


@_storage_errors
def due_tasks(
    db: Session,
    user_id: str,
    current_time: str,
    *,
    now: Optional[datetime] = None,
) -> List[TaskDB]:
    """Open tasks whose reminder_time equals `current_time` ("HH:MM") exactly
    and whose due_date has not passed.

    Tasks already reminded during the minute containing `now` are skipped, so
    a second run in the same minute does not notify twice.
    """
    now = as_utc(now) or now_utc()
    return (
        db.query(TaskDB)
        .filter(
            TaskDB.user_id == user_id,
            TaskDB.completed.is_(False),
            TaskDB.due_date.isnot(None),
            TaskDB.due_date >= now,
            TaskDB.reminder_time == current_time,
            or_(TaskDB.notified_at.is_(None), TaskDB.notified_at < _minute_start(now)),
        )
        .order_by(TaskDB.due_date.asc())
        .all()
    )


@_storage_errors
def mark_notified(db: Session, tasks: Iterable[TaskDB], at: Optional[datetime] = None) -> int:
    """Stamp notified_at on the given tasks; returns how many were stamped."""
    at = as_utc(at) or now_utc()
    count = 0
    for row in tasks:
        row.notified_at = at
        db.add(row)
        count += 1
    db.commit()
    return count


# --- Push subscriptions ----------------------------------------------------


@_storage_errors
def save_subscription(db: Session, user_id: str, endpoint: str, p256dh: str, auth: str) -> PushSubscriptionDB:
    """Upsert by (user_id, endpoint): re-subscribing replaces the keys."""
    if not endpoint or not p256dh or not auth:
        raise ValidationError("endpoint, p256dh and auth are required")

    def _existing():
        return (
            db.query(PushSubscriptionDB)
            .filter(PushSubscriptionDB.user_id == user_id, PushSubscriptionDB.endpoint == endpoint)
            .one_or_none()
        )

    row = _existing()
    if row is None:
        row = PushSubscriptionDB(user_id=user_id, endpoint=endpoint, p256dh=p256dh, auth=auth, created_at=now_utc())
        db.add(row)
        try:
            db.commit()
            db.refresh(row)
            return row
        except IntegrityError:
            db.rollback()
            row = _existing()
            if row is None:
                raise
    row.p256dh = p256dh
    row.auth = auth
    row.created_at = now_utc()
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@_storage_errors
def list_subscriptions(db: Session, user_id: str) -> List[PushSubscriptionDB]:
    return (
        db.query(PushSubscriptionDB)
        .filter(PushSubscriptionDB.user_id == user_id)
        .order_by(PushSubscriptionDB.created_at.asc())
        .all()
    )


@_storage_errors
def list_active_subscriptions(db: Session) -> List[PushSubscriptionDB]:
    """Every subscription that still belongs to an existing user."""
    return db.query(PushSubscriptionDB).join(UserDB, PushSubscriptionDB.user_id == UserDB.id).all()


@_storage_errors
def delete_subscription(db: Session, user_id: str, endpoint: str) -> bool:
    """Remove the (user_id, endpoint) row if present; absent is not an error."""
    deleted = (
        db.query(PushSubscriptionDB)
        .filter(PushSubscriptionDB.user_id == user_id, PushSubscriptionDB.endpoint == endpoint)
        .delete(synchronize_session=False)
    )
    db.commit()
    return bool(deleted)
