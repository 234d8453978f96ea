from fastapi import APIRouter
from app.routers import admin, attendance, notifications, payslip

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(attendance.router, tags=["Attendance"])
api_router.include_router(admin.router, tags=["Administration"])
api_router.include_router(payslip.router, tags=["Payslips"])
api_router.include_router(notifications.router, tags=["Notifications"])
