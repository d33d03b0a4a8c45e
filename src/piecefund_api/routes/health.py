"""Health check endpoint."""

from datetime import UTC, datetime

from fastapi import APIRouter

from piecefund import __version__
from piecefund_api.models.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Service health")
async def health() -> HealthResponse:
    """Report that the service is up."""
    return HealthResponse(version=__version__, timestamp=datetime.now(UTC))
