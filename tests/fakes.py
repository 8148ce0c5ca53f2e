# tests/fakes.py
# PURPOSE: push delivery doubles; nothing here talks to a real push service.

from taskmaster.exceptions import DeliveryError, SubscriptionGoneError


class FakeDispatcher:
    """Records deliveries; endpoints listed in `gone` / `failing` raise."""

    def __init__(self, gone=(), failing=()):
        self.gone = set(gone)
        self.failing = set(failing)
        self.sent = []  # (endpoint, PushMessage)

    def send(self, subscription, message):
        endpoint = subscription.endpoint
        if endpoint in self.gone:
            raise SubscriptionGoneError("subscription gone (410)", status_code=410)
        if endpoint in self.failing:
            raise DeliveryError("push service rejected message (500)", status_code=500)
        self.sent.append((endpoint, message))


class FakeResponse:
    def __init__(self, status_code: int, text: str = ""):
        self.status_code = status_code
        self.text = text


class RecordingSender:
    """Stands in for pywebpush.webpush; optionally raises a prepared error."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        # real webpush mutates the claims dict it receives
        kwargs["vapid_claims"].setdefault("aud", "https://push.example.com")
        if self.error is not None:
            raise self.error
        return FakeResponse(201)
