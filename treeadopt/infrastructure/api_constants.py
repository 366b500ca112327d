"""
API endpoint constants and configuration.

This module contains all external API endpoint paths and related constants.
Centralizing these values makes it easy to swap out endpoints or update API versions.
"""


# Cloudinary API Endpoints
class CloudinaryEndpoints:
    """Cloudinary REST endpoint paths."""

    BASE_URL = "https://api.cloudinary.com/v1_1"

    UPLOAD = "/{cloud_name}/{resource_type}/upload"
    DESTROY = "/{cloud_name}/{resource_type}/destroy"

    @classmethod
    def upload(cls, cloud_name: str, resource_type: str) -> str:
        """
        Get the upload endpoint for a resource type.

        Args:
            cloud_name: Cloudinary cloud name
            resource_type: 'raw' or 'image'

        Returns:
            Formatted endpoint path
        """
        return cls.UPLOAD.format(cloud_name=cloud_name, resource_type=resource_type)

    @classmethod
    def destroy(cls, cloud_name: str, resource_type: str) -> str:
        return cls.DESTROY.format(cloud_name=cloud_name, resource_type=resource_type)


# OpenRouter API Endpoints
class OpenRouterEndpoints:
    """OpenRouter endpoint paths (relative to the configured base URL)."""

    CHAT_COMPLETIONS = "/chat/completions"


# API Configuration Constants
class APIConstants:
    """General API configuration constants."""

    # HTTP Headers
    CONTENT_TYPE_JSON = "application/json"

    # Timeouts (in seconds)
    DEFAULT_TIMEOUT = 30.0
    LONG_TIMEOUT = 60.0

    # Tree chat
    CHAT_TEMPERATURE = 0.7
    CHAT_MAX_TOKENS = 150
    CHAT_HISTORY_LIMIT = 10
