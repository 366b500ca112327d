"""
Infrastructure layer: Cloudinary media storage client.

Used for NFT metadata (raw JSON) and tree images.
"""
import base64
import hashlib
import json
import logging
import time
from typing import Any, Dict, Optional

from treeadopt.config import settings
from treeadopt.domain.exceptions import ExternalAPIError, ValidationError
from treeadopt.infrastructure.api_constants import APIConstants, CloudinaryEndpoints
from treeadopt.infrastructure.external_api_client import ExternalAPIClient


logger = logging.getLogger(__name__)

RESOURCE_TYPES = ("raw", "image")


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """
    Compute a Cloudinary request signature.

    Params are sorted by name, joined as ``key=value`` pairs with ``&`` and
    suffixed with the API secret before hashing with SHA-1.
    """
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def encode_raw_payload(data: Any) -> str:
    """Encode JSON metadata as a base64 data URI."""
    encoded = base64.b64encode(json.dumps(data).encode("utf-8")).decode("ascii")
    return f"data:application/json;base64,{encoded}"


class MediaStorageClient(ExternalAPIClient):
    """Client for uploading to and deleting from Cloudinary."""

    def __init__(self):
        super().__init__(
            base_url=CloudinaryEndpoints.BASE_URL,
            timeout=APIConstants.LONG_TIMEOUT,
        )
        self.cloud_name = settings.cloudinary_cloud_name
        self.api_key = settings.cloudinary_api_key
        self.api_secret = settings.cloudinary_api_secret
        self.default_upload_preset = settings.cloudinary_upload_preset
        self.folder = settings.cloudinary_folder

    async def upload(
        self,
        data: Any,
        resource_type: str = "raw",
        upload_preset: Optional[str] = None,
    ) -> Dict[str, str]:
        """
        Upload JSON metadata or an image.

        Args:
            data: JSON-serializable metadata for 'raw', or an image data URI / URL for 'image'
            resource_type: 'raw' or 'image'
            upload_preset: Unsigned upload preset; falls back to the configured one

        Returns:
            Dictionary with the secure URL and public id

        Raises:
            ValidationError: If there is nothing to upload
            ExternalAPIError: If Cloudinary rejects the upload
        """
        if not data:
            raise ValidationError("No data provided")
        if resource_type not in RESOURCE_TYPES:
            raise ValidationError(f"Unsupported resource type: {resource_type}")

        payload = encode_raw_payload(data) if resource_type == "raw" else data
        form = {
            "file": payload,
            "upload_preset": upload_preset or self.default_upload_preset,
            "folder": self.folder,
        }

        logger.info(f"Uploading {resource_type} asset to folder {self.folder}")
        result = await self._make_request(
            "POST",
            CloudinaryEndpoints.upload(self.cloud_name, resource_type),
            data=form,
        )
        logger.info(f"Upload successful: {result.get('public_id')}")
        return {"url": result["secure_url"], "public_id": result["public_id"]}

    async def delete(self, public_id: str, resource_type: str = "image") -> Dict[str, Any]:
        """
        Delete an asset by public id.

        Raises:
            ValidationError: If no public id is given
            ExternalAPIError: If Cloudinary does not report 'ok'
        """
        if not public_id:
            raise ValidationError("Public ID is required")

        params = {"public_id": public_id, "timestamp": int(time.time())}
        form = {
            **params,
            "api_key": self.api_key,
            "signature": sign_params(params, self.api_secret),
        }
        result = await self._make_request(
            "POST",
            CloudinaryEndpoints.destroy(self.cloud_name, resource_type),
            data=form,
        )
        logger.info(f"Delete result for {public_id}: {result}")

        if result.get("result") != "ok":
            raise ExternalAPIError(
                f"Failed to delete from Cloudinary: {result.get('result')}"
            )
        return result


_media_client: Optional[MediaStorageClient] = None


def get_media_client() -> MediaStorageClient:
    global _media_client
    if _media_client is None:
        _media_client = MediaStorageClient()
    return _media_client


async def close_media_client() -> None:
    global _media_client
    if _media_client is not None:
        await _media_client.close()
        _media_client = None
