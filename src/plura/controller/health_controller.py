"""Basic health check endpoint.

Reports PostgreSQL and Redis connectivity for load balancers and monitors.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Overall system status (healthy/unhealthy)
        postgres: PostgreSQL connection status
        redis: Redis connection status
        error: Error message if unhealthy
    """

    status: str = Field(..., description="Overall system status")
    postgres: Optional[str] = Field(None, description="PostgreSQL status")
    redis: Optional[str] = Field(None, description="Redis status")
    error: Optional[str] = Field(None, description="Error message if unhealthy")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"status": "healthy", "postgres": "connected", "redis": "connected"},
                {"status": "unhealthy", "error": "PostgreSQL connection failed"},
            ]
        }
    }


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    response_model=HealthResponse,
    response_model_exclude_none=True,
    summary="System Health Check",
    description="Verifies PostgreSQL and Redis connectivity.",
)
async def health_check(request: Request) -> HealthResponse:
    """Ping both stores; any failure reports unhealthy instead of raising."""
    try:
        await request.app.state.postgres_client.health_check()
        await request.app.state.redis_client.ping()
        return HealthResponse(status="healthy", postgres="connected", redis="connected")

    except Exception as e:
        logger.error(f"Health check failed: {e}", exc_info=True)
        return HealthResponse(status="unhealthy", error=str(e))
