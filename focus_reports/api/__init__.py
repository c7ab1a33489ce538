"""API router."""

from fastapi import APIRouter

from focus_reports.api import reports

router = APIRouter()

router.include_router(reports.router, prefix="/reports", tags=["reports"])
