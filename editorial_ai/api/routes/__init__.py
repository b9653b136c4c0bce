from fastapi import APIRouter

from editorial_ai.api.routes import health, suggestions

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(suggestions.router, tags=["suggestions"])
