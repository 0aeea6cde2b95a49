"""Health check API endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from social_server.api.dependencies import service
from social_server.services.health_check_service import HealthCheckResult, HealthCheckService

router = APIRouter(tags=["System"])


@router.get("/health-check", response_model=HealthCheckResult)
async def health_check(health_service: HealthCheckService = Depends(service(HealthCheckService))) -> JSONResponse:
    """Report database, cache store and broker status.

    Returns 200 when all are reachable, 503 otherwise.
    """
    logger.debug("Health check requested")
    result = await health_service.perform_health_check()
    return JSONResponse(status_code=200 if result.status == "ok" else 503, content=result.model_dump())
