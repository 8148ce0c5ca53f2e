# tests/test_push_api.py
# PURPOSE: subscription endpoints, test notification and VAPID key exposure.

from taskmaster.config import settings


def _subscription(endpoint="https://push.example.com/abc", p256dh="BKey", auth="secret"):
    return {"endpoint": endpoint, "keys": {"p256dh": p256dh, "auth": auth}}


def test_subscribe_list_unsubscribe(client, signed_in):
    r = client.post("/api/push-subscription", json=_subscription(), headers=signed_in)
    assert r.status_code == 201
    assert r.json()["endpoint"] == "https://push.example.com/abc"

    listed = client.get("/api/push-subscription", headers=signed_in).json()
    assert [s["endpoint"] for s in listed] == ["https://push.example.com/abc"]

    r_del = client.request(
        "DELETE", "/api/push-subscription", json={"endpoint": "https://push.example.com/abc"}, headers=signed_in
    )
    assert r_del.status_code == 204
    assert client.get("/api/push-subscription", headers=signed_in).json() == []

    # Unsubscribing again is harmless
    r_again = client.request(
        "DELETE", "/api/push-subscription", json={"endpoint": "https://push.example.com/abc"}, headers=signed_in
    )
    assert r_again.status_code == 204


def test_resubscribe_same_endpoint_keeps_one_row(client, signed_in):
    first = client.post("/api/push-subscription", json=_subscription(p256dh="old"), headers=signed_in).json()
    second = client.post("/api/push-subscription", json=_subscription(p256dh="new"), headers=signed_in).json()
    assert first["id"] == second["id"]
    assert len(client.get("/api/push-subscription", headers=signed_in).json()) == 1


def test_subscribe_requires_keys(client, signed_in):
    r = client.post("/api/push-subscription", json={"endpoint": "https://push.example.com/x"}, headers=signed_in)
    assert r.status_code == 422


def test_subscribe_requires_device(client):
    r = client.post("/api/push-subscription", json=_subscription())
    assert r.status_code == 401


def test_test_notification_goes_to_own_devices(client, signed_in, dispatcher):
    client.post("/api/push-subscription", json=_subscription("https://push.example.com/mine"), headers=signed_in)
    client.post("/api/auth", json={"deviceId": "device-bob"})
    client.post(
        "/api/push-subscription",
        json=_subscription("https://push.example.com/bob"),
        headers={"X-Device-ID": "device-bob"},
    )

    r = client.post("/api/test-notification", json={"message": "ping"}, headers=signed_in)
    assert r.status_code == 200
    body = r.json()
    assert body["notificationsSent"] == 1
    assert body["errors"] == 0
    (endpoint, message), = dispatcher.sent
    assert endpoint == "https://push.example.com/mine"
    assert message.body == "ping"


def test_test_notification_removes_gone_subscription(client, signed_in, dispatcher):
    dispatcher.gone.add("https://push.example.com/dead")
    client.post("/api/push-subscription", json=_subscription("https://push.example.com/dead"), headers=signed_in)

    r = client.post("/api/test-notification", json={}, headers=signed_in)
    assert r.json()["errors"] == 1
    assert r.json()["removedSubscriptions"] == 1
    assert client.get("/api/push-subscription", headers=signed_in).json() == []


def test_test_notification_without_subscriptions_is_404(client, signed_in):
    r = client.post("/api/test-notification", json={}, headers=signed_in)
    assert r.status_code == 404


def test_vapid_public_key(client, monkeypatch):
    monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", "")
    assert client.get("/api/vapid-public-key").status_code == 503

    monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", "BPublicKey")
    r = client.get("/api/vapid-public-key")
    assert r.status_code == 200
    assert r.json() == {"publicKey": "BPublicKey"}
