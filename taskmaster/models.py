# PURPOSE: request/response schemas. JSON uses camelCase (deviceId, dueDate,
# reminderTime); Python attributes stay snake_case.

import re
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

REMINDER_TIME_RE = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d$")


def is_valid_reminder_time(value: str) -> bool:
    """True for 24h "HH:MM" strings such as "09:00" or "23:59"."""
    return bool(REMINDER_TIME_RE.match(value))


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize to aware UTC; naive values are taken as UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _TaskSchedule(CamelModel):
    """Shared parsing of the optional due date / reminder time pair."""

    @field_validator("due_date", "reminder_time", mode="before", check_fields=False)
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        # the client clears a picker by sending ""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("due_date", check_fields=False)
    @classmethod
    def _due_date_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @field_validator("reminder_time", check_fields=False)
    @classmethod
    def _reminder_time_format(cls, value: str | None) -> str | None:
        if value is not None and not is_valid_reminder_time(value):
            raise ValueError("reminderTime must be HH:MM (24h)")
        return value


# --- User / device auth ---


class DeviceAuth(CamelModel):
    device_id: str = Field(min_length=1, max_length=255)
    model_config = ConfigDict(
        str_strip_whitespace=True,
        json_schema_extra={"examples": [{"deviceId": "3f9c1a7be02d4c55"}]},
    )


class UserPublic(CamelModel):
    id: str
    device_id: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)  # ORM -> schema

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)


# --- Tasks ---


class TaskCreate(_TaskSchedule):
    text: str = Field(min_length=1)
    due_date: datetime | None = None
    reminder_time: str | None = None
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"text": "Buy milk"},
                {"text": "Dentist", "dueDate": "2026-12-01T10:00:00Z", "reminderTime": "09:00"},
            ]
        },
    )


class TaskUpdate(_TaskSchedule):
    """Partial update. `text`/`completed` change only when given a value;
    `dueDate`/`reminderTime` change whenever present, and null clears them."""

    id: str
    text: str | None = Field(default=None, min_length=1)
    completed: bool | None = None
    due_date: datetime | None = None
    reminder_time: str | None = None
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {"id": "<task id>", "completed": True},
                {"id": "<task id>", "dueDate": None, "reminderTime": None},
            ]
        },
    )


class Task(CamelModel):
    id: str
    text: str
    completed: bool
    due_date: datetime | None
    reminder_time: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        # SQLite hands back naive values; they were written as UTC
        return as_utc(value)


# --- Push subscriptions ---


class PushKeys(BaseModel):
    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class PushSubscriptionIn(BaseModel):
    """The browser's PushSubscription.toJSON() shape."""

    endpoint: str = Field(min_length=1)
    keys: PushKeys
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "endpoint": "https://fcm.googleapis.com/fcm/send/abc123",
                    "keys": {"p256dh": "BNc...", "auth": "tBH..."},
                }
            ]
        },
    )


class PushSubscriptionRef(BaseModel):
    endpoint: str = Field(min_length=1)
    model_config = ConfigDict(extra="ignore")


class PushSubscription(CamelModel):
    id: str
    endpoint: str
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class VapidPublicKey(CamelModel):
    public_key: str


class NotificationRequest(BaseModel):
    message: str = "Test notification from TaskMaster!"


# --- Delivery results ---


class DeliverySummary(CamelModel):
    """Counters reported by the reminder job and the test notification."""

    notifications_sent: int = 0
    errors: int = 0
    removed_subscriptions: int = 0
    timestamp: datetime
    message: str | None = None
