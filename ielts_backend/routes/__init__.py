"""
ielts_backend/routes/__init__.py
Route registration
"""
from fastapi import APIRouter
from ielts_backend.routes import exam_sessions, admin_results

router = APIRouter()

router.include_router(exam_sessions.router)
router.include_router(admin_results.router)
