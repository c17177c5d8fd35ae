# Fichier: studyflow/backend/app/api/api.py
from fastapi import APIRouter

from .endpoints import (
    analytics_router,
    auth_router,
    chat_router,
    onboarding_router,
    study_router,
)

api_router = APIRouter()

api_router.include_router(auth_router.router, prefix="/auth", tags=["Auth"])
api_router.include_router(onboarding_router.router, prefix="/onboarding", tags=["Onboarding"])
api_router.include_router(study_router.router, prefix="/study", tags=["Study"])
api_router.include_router(chat_router.router, prefix="/chat", tags=["Chat"])
api_router.include_router(analytics_router.router, prefix="/analytics", tags=["Analytics"])
