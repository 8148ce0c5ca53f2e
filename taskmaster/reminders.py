"""Due-task reminder job.

One call of :func:`run_reminder_job` is one stateless pass: find every active
subscription, group by owner, look up the owner's tasks whose reminder time
is the current "HH:MM", and push one summary message to each of the owner's
devices. Failures are counted per item; the pass itself always returns a
summary.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, tzinfo
from typing import Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from . import store_db
from .config import settings
from .db_models import TaskDB, now_utc
from .exceptions import DeliveryError, StorageError, SubscriptionGoneError
from .models import DeliverySummary, as_utc
from .push import Dispatcher, PushMessage

logger = logging.getLogger(__name__)


def reminder_timezone(name: str | None = None) -> tzinfo | None:
    """Zone used to read the wall clock; None means server local time."""
    name = settings.REMINDER_TIMEZONE if name is None else name
    return ZoneInfo(name) if name else None


def current_time_hhmm(now: datetime, tz: tzinfo | None = None) -> str:
    """Local "HH:MM" for an aware instant."""
    return now.astimezone(tz).strftime("%H:%M")


def build_reminder_message(tasks: Sequence[TaskDB]) -> PushMessage:
    """One composite notification for all of a user's due tasks."""
    if len(tasks) == 1:
        body = f"You have a task due: {tasks[0].text}"
    else:
        body = f"You have tasks due: {len(tasks)} tasks"
    return PushMessage(
        title=settings.REMINDER_TITLE,
        body=body,
        icon=settings.REMINDER_ICON,
        badge=settings.REMINDER_BADGE,
        data={
            "url": "/",
            "tasks": [
                {
                    "id": t.id,
                    "text": t.text,
                    "dueDate": as_utc(t.due_date).isoformat() if t.due_date else None,
                    "reminderTime": t.reminder_time,
                }
                for t in tasks
            ],
        },
    )


def deliver(db: Session, dispatcher: Dispatcher, subscription, message: PushMessage, summary: DeliverySummary) -> bool:
    """Send to one subscription, updating `summary`; gone endpoints are deleted."""
    sub_id, user_id, endpoint = subscription.id, subscription.user_id, subscription.endpoint
    try:
        dispatcher.send(subscription, message)
    except SubscriptionGoneError:
        summary.errors += 1
        try:
            store_db.delete_subscription(db, user_id, endpoint)
        except StorageError:
            logger.error("could not remove gone subscription id=%s", sub_id)
        else:
            summary.removed_subscriptions += 1
            logger.info("removed invalid subscription id=%s user_id=%s", sub_id, user_id)
        return False
    except DeliveryError as exc:
        summary.errors += 1
        logger.warning("push to subscription id=%s failed: %s", sub_id, exc)
        return False
    except Exception:
        summary.errors += 1
        logger.exception("unexpected error pushing to subscription id=%s", sub_id)
        return False
    summary.notifications_sent += 1
    return True


def run_reminder_job(
    db: Session,
    dispatcher: Dispatcher,
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> DeliverySummary:
    now = as_utc(now) or now_utc()
    summary = DeliverySummary(timestamp=now)
    if tz is None:
        try:
            tz = reminder_timezone()
        except (ZoneInfoNotFoundError, ValueError):
            logger.error("unknown REMINDER_TIMEZONE %r; reminder run skipped", settings.REMINDER_TIMEZONE)
            summary.errors += 1
            summary.message = "Invalid reminder timezone"
            return summary
    current_time = current_time_hhmm(now, tz)
    logger.info("reminder job started current_time=%s", current_time)

    try:
        subscriptions = store_db.list_active_subscriptions(db)
    except StorageError:
        summary.errors += 1
        summary.message = "Could not load subscriptions"
        return summary
    if not subscriptions:
        summary.message = "No subscriptions to check"
        logger.info("reminder job: no subscriptions to check")
        return summary

    by_user: dict[str, list] = defaultdict(list)
    for sub in subscriptions:
        by_user[sub.user_id].append(sub)

    for user_id, user_subs in by_user.items():
        try:
            due = store_db.due_tasks(db, user_id, current_time, now=now)
        except StorageError:
            summary.errors += 1
            continue
        if not due:
            continue

        message = build_reminder_message(due)
        delivered = False
        for sub in user_subs:
            delivered = deliver(db, dispatcher, sub, message, summary) or delivered

        if delivered:
            try:
                store_db.mark_notified(db, due, now)
            except StorageError:
                summary.errors += 1

    logger.info(
        "reminder job completed notifications_sent=%s errors=%s removed=%s",
        summary.notifications_sent,
        summary.errors,
        summary.removed_subscriptions,
    )
    return summary
