"""Global exception handlers for the FastAPI application.

This module contains custom exception handlers that convert
application exceptions into proper HTTP responses.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from social_server.exceptions import ObjectStorageError, ResourceNotFoundError


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance
    """

    @app.exception_handler(ResourceNotFoundError)
    async def resource_not_found_handler(_request: Request, exc: ResourceNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": f"{exc.resource_type} not found"})

    @app.exception_handler(ObjectStorageError)
    async def object_storage_handler(_request: Request, exc: ObjectStorageError) -> JSONResponse:
        logger.error(f"Object storage failure: {exc}")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": "Media storage unavailable"})

    logger.debug("Registered exception handlers")
