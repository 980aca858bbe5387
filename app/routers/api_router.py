from fastapi import APIRouter
from app.routers import (
    auth, employees, departments, attendance, leaves, payroll, performance
)

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
# Each group mounts under /api/<resource>.
api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(employees.router, tags=["Employees"])
api_router.include_router(departments.router, tags=["Departments"])
api_router.include_router(attendance.router, tags=["Attendance"])
api_router.include_router(leaves.router, tags=["Leaves"])
api_router.include_router(payroll.router, tags=["Payroll"])
api_router.include_router(performance.router, tags=["Performance"])
