# PURPOSE: entry point for the external scheduler (e.g. a platform cron hitting
# the URL every minute with the shared secret).

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import require_cron_secret
from ..models import DeliverySummary
from ..push import Dispatcher, get_dispatcher
from ..reminders import run_reminder_job
from ..store_db import get_db

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(require_cron_secret)])


@router.get("/check-due-tasks", response_model=DeliverySummary)
def check_due_tasks(
    db: Session = Depends(get_db),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    return run_reminder_job(db, dispatcher)
