"""Mounts every domain router on one APIRouter for the app."""

from fastapi import APIRouter

from admissions.auth.router import router as auth_router
from admissions.health.router import router as health_router
from admissions.institution.router import router as institution_router
from admissions.membership.router import router as membership_router
from admissions.user.router import router as user_router

api_router = APIRouter()

for domain_router in (
    health_router,
    auth_router,
    user_router,
    institution_router,
    membership_router,
):
    api_router.include_router(domain_router)
