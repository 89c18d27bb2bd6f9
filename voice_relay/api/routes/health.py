"""
Health Check Endpoints.
Liveness only; never consults the language model provider.
"""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Basic health check endpoint."""
    settings = request.app.state.settings
    return {
        "status": "ok",
        "message": f"{settings.APP_NAME} server is running"
    }
