"""Run one reminder pass from a system scheduler (cron, systemd timer, k8s CronJob).

    taskmaster-check-due-tasks

Prints the JSON summary on stdout and exits 0 even when individual
deliveries failed; exits 1 when push is not configured. With
DB_CREATE_ALL (the default) missing tables are created first.
"""

from __future__ import annotations

import logging
import sys

from .config import settings
from .db import Base, SessionLocal, engine
from .logging_utils import setup_logging
from .push import process_dispatcher
from .reminders import run_reminder_job

logger = logging.getLogger(__name__)


def main() -> int:
    setup_logging(settings.LOG_LEVEL, stream=sys.stderr)
    dispatcher = process_dispatcher()
    if dispatcher is None:
        logger.error("VAPID_PUBLIC_KEY/VAPID_PRIVATE_KEY are not set; nothing can be sent")
        return 1

    if settings.DB_CREATE_ALL:
        # Same convenience as the app lifespan; deployments run `alembic upgrade head`
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        summary = run_reminder_job(db, dispatcher)
    finally:
        db.close()
    print(summary.model_dump_json(by_alias=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
