"""Web Push delivery.

A :class:`Dispatcher` holds one VAPID key pair for the whole process and sends
an encrypted payload to a single browser subscription through pywebpush.
Failures are classified so callers can drop subscriptions the push service
reports as gone (404/410) and merely count everything else.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable

import requests
from fastapi import HTTPException, status
from pywebpush import WebPushException, webpush

from .config import Settings, settings
from .exceptions import DeliveryError, SubscriptionGoneError

logger = logging.getLogger(__name__)

GONE_STATUS_CODES = (404, 410)


@dataclass(frozen=True)
class VapidConfig:
    public_key: str
    private_key: str
    subject: str  # "mailto:..." or an https URL identifying the sender

    @property
    def claims(self) -> dict[str, str]:
        return {"sub": self.subject}


@dataclass
class PushMessage:
    """Notification payload as the service worker expects it."""

    title: str
    body: str
    icon: str | None = None
    badge: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        payload: dict[str, Any] = {"title": self.title, "body": self.body}
        if self.icon:
            payload["icon"] = self.icon
        if self.badge:
            payload["badge"] = self.badge
        if self.data:
            payload["data"] = self.data
        return json.dumps(payload, default=str)


def subscription_info(subscription) -> dict[str, Any]:
    """Row (or anything with endpoint/p256dh/auth) -> pywebpush subscription dict."""
    return {
        "endpoint": subscription.endpoint,
        "keys": {"p256dh": subscription.p256dh, "auth": subscription.auth},
    }


def _status_of(exc: WebPushException) -> int | None:
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None) if response is not None else None


class Dispatcher:
    """Send push messages with a fixed VAPID identity."""

    def __init__(
        self,
        vapid: VapidConfig,
        *,
        ttl: int = 0,
        timeout: float | None = None,
        sender: Callable[..., Any] = webpush,
    ):
        self.vapid = vapid
        self.ttl = ttl
        self.timeout = timeout
        self._sender = sender

    def send(self, subscription, message: PushMessage) -> None:
        """Deliver `message` to one subscription.

        Raises SubscriptionGoneError when the endpoint no longer exists and
        DeliveryError for any other failure.
        """
        try:
            self._sender(
                subscription_info=subscription_info(subscription),
                data=message.to_json(),
                vapid_private_key=self.vapid.private_key,
                # webpush fills in "aud"/"exp" per endpoint, so never share the dict
                vapid_claims=dict(self.vapid.claims),
                ttl=self.ttl,
                timeout=self.timeout,
            )
        except WebPushException as exc:
            code = _status_of(exc)
            if code in GONE_STATUS_CODES:
                raise SubscriptionGoneError(f"subscription gone ({code})", status_code=code) from exc
            raise DeliveryError(f"push service rejected message ({code})", status_code=code) from exc
        except (requests.RequestException, ValueError) as exc:
            # network trouble or undecodable client keys
            raise DeliveryError(f"push delivery failed: {exc}") from exc


def vapid_config_from_settings(cfg: Settings) -> VapidConfig | None:
    """Return the configured key pair, or None when push is not set up."""
    if not cfg.VAPID_PRIVATE_KEY or not cfg.VAPID_PUBLIC_KEY:
        return None
    return VapidConfig(
        public_key=cfg.VAPID_PUBLIC_KEY,
        private_key=cfg.VAPID_PRIVATE_KEY,
        subject=cfg.VAPID_SUBJECT,
    )


@lru_cache(maxsize=1)
def process_dispatcher() -> Dispatcher | None:
    vapid = vapid_config_from_settings(settings)
    if vapid is None:
        logger.warning("VAPID keys not configured; push delivery disabled")
        return None
    return Dispatcher(vapid, ttl=settings.PUSH_TTL_SECONDS, timeout=settings.PUSH_TIMEOUT_SECONDS)


def get_dispatcher() -> Dispatcher:
    """FastAPI dependency: the process-wide dispatcher, 503 when unconfigured."""
    dispatcher = process_dispatcher()
    if dispatcher is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Push notifications are not configured",
        )
    return dispatcher
