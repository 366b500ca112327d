"""
API router for media storage (NFT metadata and images).
"""
import logging
from fastapi import APIRouter

from treeadopt.api.dependencies import MediaClientDep
from treeadopt.api.v1.models.requests import DeleteMediaRequest, UploadRequest
from treeadopt.api.v1.models.responses import DeleteMediaResponse, UploadResponse


logger = logging.getLogger(__name__)

router = APIRouter(tags=["media"])


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload NFT metadata or an image",
    responses={400: {"description": "No data provided"}},
)
async def upload(body: UploadRequest, media: MediaClientDep) -> UploadResponse:
    logger.info(f"Received upload request: resource_type={body.resource_type}, has_data={bool(body.data)}")
    result = await media.upload(body.data, body.resource_type, body.upload_preset)
    return UploadResponse(url=result["url"], public_id=result["public_id"])


@router.post(
    "/delete",
    response_model=DeleteMediaResponse,
    summary="Delete an uploaded asset",
    responses={400: {"description": "Public ID is required"}},
)
async def delete(body: DeleteMediaRequest, media: MediaClientDep) -> DeleteMediaResponse:
    result = await media.delete(body.public_id, body.resource_type)
    return DeleteMediaResponse(result=result)
