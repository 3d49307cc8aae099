from fastapi import APIRouter

from bursary.modules.applications.admin_router import router as admin_applications_router
from bursary.modules.applications.analytics_router import router as admin_analytics_router
from bursary.modules.applications.router import router as student_applications_router
from bursary.modules.applications.students_router import router as admin_students_router
from bursary.modules.notifications.router import router as notifications_router
from bursary.modules.periods.admin_router import router as admin_periods_router
from bursary.modules.periods.router import router as portal_config_router
from bursary.modules.profiles.router import router as profile_router

api_router = APIRouter()

api_router.include_router(profile_router, prefix="/student/profile", tags=["Student - Profile"])

api_router.include_router(
    student_applications_router,
    prefix="/student/applications",
    tags=["Student - Applications"],
)

api_router.include_router(
    notifications_router,
    prefix="/student/notifications",
    tags=["Student - Notifications"],
)

api_router.include_router(
    admin_applications_router,
    prefix="/admin/applications",
    tags=["Admin - Applications"],
)

api_router.include_router(
    admin_students_router,
    prefix="/admin/students",
    tags=["Admin - Students"],
)

api_router.include_router(
    admin_analytics_router,
    prefix="/admin/analytics",
    tags=["Admin - Analytics"],
)

api_router.include_router(
    admin_periods_router,
    prefix="/admin/periods",
    tags=["Admin - Application Periods"],
)

api_router.include_router(portal_config_router, prefix="/config", tags=["Portal Configuration"])
