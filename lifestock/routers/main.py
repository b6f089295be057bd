from fastapi import APIRouter

from lifestock.routers.users import users_router
from lifestock.routers.tasks import tasks_router
from lifestock.routers.shared_lists import shared_lists_router
from lifestock.routers.calendar import calendar_router
from lifestock.routers.friends import friends_router
from lifestock.routers.notifications import notifications_router
from lifestock.routers.push import push_router
from lifestock.routers.health import health_router

main_router = APIRouter()

# Include domain-based routers
main_router.include_router(users_router, prefix="/users", tags=["Users"])
main_router.include_router(tasks_router, prefix="/tasks", tags=["Tasks"])
main_router.include_router(
    shared_lists_router, prefix="/shared-lists", tags=["Shared Lists"]
)
main_router.include_router(calendar_router, prefix="/calendar", tags=["Calendar"])
main_router.include_router(friends_router, prefix="/friends", tags=["Friends"])
main_router.include_router(
    notifications_router, prefix="/notifications", tags=["Notifications"]
)
main_router.include_router(push_router, prefix="/push", tags=["Push Notifications"])
main_router.include_router(health_router, prefix="/health", tags=["Health Checks"])
