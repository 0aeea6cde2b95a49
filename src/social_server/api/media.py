"""Media API - upload and list media objects."""

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from loguru import logger

from social_server.api.dependencies import get_actor_id, rate_limited, service
from social_server.constants import SCOPE_MEDIA_UPLOAD
from social_server.models.api_model import MediaResponse
from social_server.services.media_service import MediaService

router = APIRouter()


@router.post("/media/upload", response_model=MediaResponse, status_code=status.HTTP_201_CREATED)
async def upload_media(
    file: UploadFile | None = File(default=None),
    actor_id: str = Depends(rate_limited(SCOPE_MEDIA_UPLOAD)),
    media_service: MediaService = Depends(service(MediaService)),
) -> MediaResponse:
    """Upload a single file for the authenticated actor."""
    if file is None or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file found. Please add a file")

    # Read one byte past the limit to detect oversized uploads without buffering them whole
    data = await file.read(media_service.max_bytes + 1)
    if len(data) > media_service.max_bytes:
        logger.warning(f"Upload {file.filename} from {actor_id} exceeds {media_service.max_bytes} bytes")
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="File too large")

    mime_type = file.content_type or "application/octet-stream"
    return await media_service.upload(actor_id, file.filename, mime_type, data)


@router.get("/media", response_model=list[MediaResponse])
async def list_media(
    _actor_id: str = Depends(get_actor_id),
    media_service: MediaService = Depends(service(MediaService)),
) -> list[MediaResponse]:
    return await media_service.list_media()
