# PURPOSE: define how users, tasks and push subscriptions look in the database.

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def now_utc():
    """Return timezone-aware UTC datetime (stored in DB)."""
    return datetime.now(UTC)


def new_id() -> str:
    """Opaque primary key (UUID4 as text, portable across SQLite/Postgres)."""
    return str(uuid.uuid4())


class UserDB(Base):
    __tablename__ = "users"
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    device_id: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=now_utc)

    # children go away with the user (ORM side; FK carries ON DELETE CASCADE too)
    tasks = relationship(
        "TaskDB",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    push_subscriptions = relationship(
        "PushSubscriptionDB",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class TaskDB(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    due_date = Column(DateTime(timezone=True), nullable=True)
    reminder_time = Column(String(5), nullable=True)  # "HH:MM", 24h local
    notified_at = Column(DateTime(timezone=True), nullable=True)  # last reminder delivered
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc)

    owner = relationship("UserDB", back_populates="tasks")


class PushSubscriptionDB(Base):
    __tablename__ = "push_subscriptions"
    __table_args__ = (UniqueConstraint("user_id", "endpoint", name="uq_push_subscriptions_user_endpoint"),)

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    endpoint = Column(Text, nullable=False)
    p256dh = Column(Text, nullable=False)  # client public key (base64url)
    auth = Column(Text, nullable=False)  # client auth secret (base64url)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    owner = relationship("UserDB", back_populates="push_subscriptions")


# Helpful indexes for per-user listing and the reminder scan
Index("ix_tasks_user_id", TaskDB.user_id)
Index("ix_tasks_due_date", TaskDB.due_date)
Index("ix_push_subscriptions_user_id", PushSubscriptionDB.user_id)
