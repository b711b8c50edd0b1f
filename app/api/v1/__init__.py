"""V1 API router aggregation."""

from fastapi import APIRouter

from app.api.v1.academic_cycles import router as academic_cycles_router
from app.api.v1.assignments import router as assignments_router
from app.api.v1.attendance import router as attendance_router
from app.api.v1.audit_logs import router as audit_logs_router
from app.api.v1.auth import router as auth_router
from app.api.v1.classes import router as classes_router
from app.api.v1.enrollments import router as enrollments_router
from app.api.v1.fees import router as fees_router
from app.api.v1.grades import router as grades_router
from app.api.v1.tenants import router as tenants_router
from app.api.v1.users import router as users_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(auth_router)
v1_router.include_router(tenants_router)
v1_router.include_router(users_router)
v1_router.include_router(academic_cycles_router)
v1_router.include_router(classes_router)
v1_router.include_router(enrollments_router)
v1_router.include_router(attendance_router)
v1_router.include_router(grades_router)
v1_router.include_router(assignments_router)
v1_router.include_router(fees_router)
v1_router.include_router(audit_logs_router)
