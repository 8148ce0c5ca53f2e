# PURPOSE: browser push registrations for the calling device's user,
# plus a manual test notification and the VAPID public key for subscribe().

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..config import settings
from ..db_models import UserDB, now_utc
from ..exceptions import NotFoundError
from ..models import (
    DeliverySummary,
    NotificationRequest,
    PushSubscription,
    PushSubscriptionIn,
    PushSubscriptionRef,
    VapidPublicKey,
)
from ..push import Dispatcher, PushMessage, get_dispatcher
from ..reminders import deliver
from ..store_db import (
    delete_subscription as db_delete_subscription,
    get_db,
    list_subscriptions as db_list_subscriptions,
    save_subscription as db_save_subscription,
)

router = APIRouter(tags=["push"])


@router.get("/vapid-public-key", response_model=VapidPublicKey)
def vapid_public_key():
    if not settings.VAPID_PUBLIC_KEY:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Push notifications are not configured")
    return VapidPublicKey(public_key=settings.VAPID_PUBLIC_KEY)


@router.get("/push-subscription", response_model=List[PushSubscription])
def list_push_subscriptions(
    db: Session = Depends(get_db),
    user: UserDB = Depends(get_current_user),
):
    return db_list_subscriptions(db, user.id)


@router.post("/push-subscription", response_model=PushSubscription, status_code=status.HTTP_201_CREATED)
def save_push_subscription(
    payload: PushSubscriptionIn,
    db: Session = Depends(get_db),
    user: UserDB = Depends(get_current_user),
):
    return db_save_subscription(db, user.id, payload.endpoint, payload.keys.p256dh, payload.keys.auth)


@router.delete("/push-subscription", status_code=status.HTTP_204_NO_CONTENT)
def delete_push_subscription(
    payload: PushSubscriptionRef,
    db: Session = Depends(get_db),
    user: UserDB = Depends(get_current_user),
):
    # Unsubscribing twice is fine
    db_delete_subscription(db, user.id, payload.endpoint)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/test-notification", response_model=DeliverySummary)
def send_test_notification(
    payload: NotificationRequest,
    db: Session = Depends(get_db),
    user: UserDB = Depends(get_current_user),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    subs = db_list_subscriptions(db, user.id)
    if not subs:
        raise NotFoundError("No push subscriptions found")

    sent_at = now_utc()
    message = PushMessage(
        title="TaskMaster Test",
        body=payload.message,
        icon=settings.REMINDER_ICON,
        badge=settings.REMINDER_BADGE,
        data={"url": "/", "timestamp": sent_at.isoformat()},
    )
    summary = DeliverySummary(timestamp=sent_at)
    for sub in subs:
        deliver(db, dispatcher, sub, message, summary)
    summary.message = f"Test notification sent to {summary.notifications_sent} devices"
    return summary
