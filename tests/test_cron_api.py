# tests/test_cron_api.py
# PURPOSE: the scheduler endpoint is guarded by the shared secret and runs the job.

from datetime import UTC, datetime

from taskmaster import push, reminders
from taskmaster.config import settings

CRON_HEADERS = {"Authorization": "Bearer test-cron-secret"}
FIXED_NOW = datetime(2030, 1, 1, 9, 0, 30, tzinfo=UTC)


def test_cron_requires_bearer_secret(client):
    assert client.get("/api/cron/check-due-tasks").status_code == 401
    r = client.get("/api/cron/check-due-tasks", headers={"Authorization": "Bearer wrong"})
    assert r.status_code == 401
    r2 = client.get("/api/cron/check-due-tasks", headers={"Authorization": "test-cron-secret"})
    assert r2.status_code == 401


def test_cron_rejects_everything_without_configured_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", "")
    r = client.get("/api/cron/check-due-tasks", headers={"Authorization": "Bearer "})
    assert r.status_code == 401


def test_cron_with_no_subscriptions(client):
    r = client.get("/api/cron/check-due-tasks", headers=CRON_HEADERS)
    assert r.status_code == 200
    body = r.json()
    assert body["notificationsSent"] == 0
    assert body["errors"] == 0
    assert body["message"] == "No subscriptions to check"


def test_cron_sends_due_reminders(client, signed_in, dispatcher, monkeypatch):
    monkeypatch.setattr(reminders, "now_utc", lambda: FIXED_NOW)
    monkeypatch.setattr(settings, "REMINDER_TIMEZONE", "UTC")
    client.post(
        "/api/push-subscription",
        json={"endpoint": "https://push.example.com/1", "keys": {"p256dh": "k", "auth": "a"}},
        headers=signed_in,
    )
    client.post(
        "/api/tasks",
        json={"text": "Dentist", "dueDate": "2030-01-02T10:00:00Z", "reminderTime": "09:00"},
        headers=signed_in,
    )

    r = client.get("/api/cron/check-due-tasks", headers=CRON_HEADERS)
    assert r.status_code == 200
    assert r.json()["notificationsSent"] == 1
    assert r.json()["errors"] == 0
    assert dispatcher.sent[0][1].body == "You have a task due: Dentist"

    # the task is still open
    tasks = client.get("/api/tasks", headers=signed_in).json()
    assert tasks[0]["completed"] is False


def test_cron_without_vapid_is_unavailable(client, monkeypatch):
    # drop the fake so the real dependency runs, with no keys configured
    client.app.dependency_overrides.pop(push.get_dispatcher, None)
    monkeypatch.setattr(push, "process_dispatcher", lambda: None)

    r = client.get("/api/cron/check-due-tasks", headers=CRON_HEADERS)
    assert r.status_code == 503
    assert r.json()["error"] == "Push notifications are not configured"


def test_cron_with_unknown_timezone_still_returns_summary(client, monkeypatch):
    monkeypatch.setattr(settings, "REMINDER_TIMEZONE", "Mars/Olympus")

    r = client.get("/api/cron/check-due-tasks", headers=CRON_HEADERS)
    assert r.status_code == 200
    assert r.json()["errors"] == 1
    assert r.json()["message"] == "Invalid reminder timezone"
