from fastapi import APIRouter

from ..routers import auth as auth_router
from ..routers import cron as cron_router
from ..routers import push as push_router
from ..routers import tasks as tasks_router


api_router = APIRouter(prefix="/api")

# Endpoints live at /api/auth, /api/tasks, /api/push-subscription, /api/cron/...
api_router.include_router(auth_router.router)
api_router.include_router(tasks_router.router)
api_router.include_router(push_router.router)
api_router.include_router(cron_router.router)


@api_router.get("", tags=["auth"])  # lightweight meta endpoint
def api_info():
    return {
        "name": "TaskMaster API",
        "docs": "/docs",
        "auth": "/api/auth",
        "tasks": "/api/tasks",
        "pushSubscription": "/api/push-subscription",
        "vapidPublicKey": "/api/vapid-public-key",
    }
