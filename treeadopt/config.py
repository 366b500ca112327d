"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Payment Provider (Stripe)
    stripe_secret_key: str = Field(
        default="",
        description="Stripe secret key (server-side only)"
    )
    stripe_publishable_key: str = Field(
        default="",
        description="Stripe publishable key handed to the browser"
    )
    payment_currency: str = Field(
        default="inr",
        description="Currency for all payment intents"
    )

    # Blockchain (consumed by the browser wallet flow)
    nft_contract_address: str = Field(
        default="",
        description="Address of the tree NFT contract"
    )
    aptos_node_url: str = Field(
        default="https://fullnode.testnet.aptoslabs.com/v1",
        description="Aptos RPC node URL"
    )

    # AI Chat (OpenRouter)
    openrouter_api_key: str = Field(
        default="",
        description="API key for the OpenRouter chat completions API"
    )
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="Base URL for OpenRouter"
    )
    openrouter_model: str = Field(
        default="deepseek/deepseek-chat",
        description="Model used for tree chat"
    )

    # Media Storage (Cloudinary)
    cloudinary_cloud_name: str = Field(default="", description="Cloudinary cloud name")
    cloudinary_api_key: str = Field(default="", description="Cloudinary API key")
    cloudinary_api_secret: str = Field(default="", description="Cloudinary API secret")
    cloudinary_upload_preset: str = Field(default="", description="Unsigned upload preset")
    cloudinary_folder: str = Field(default="tree_nfts", description="Upload folder")

    # Persistence
    document_store_backend: str = Field(
        default="memory",
        description="Document store backend: 'memory' or 'firestore'"
    )
    firebase_project_id: str = Field(
        default="",
        description="Google Cloud project hosting Firestore"
    )

    # Access control
    gate_password: str = Field(
        default="",
        description="Password for the site gate"
    )
    admin_token: str = Field(
        default="",
        description="Token required by admin endpoints (empty disables them)"
    )
    session_ttl_minutes: int = Field(
        default=24 * 60,
        description="Lifetime of a signed-in session"
    )

    # Retry Configuration
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of retry attempts for API calls"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=4,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=10,
        description="Maximum wait time in seconds between retries"
    )
    community_retry_attempts: int = Field(
        default=3,
        description="Attempts for the initial community data load"
    )
    community_retry_initial_delay: float = Field(
        default=1.0,
        description="First delay in seconds for the community load; doubles per attempt"
    )

    # Adoption reconciliation
    pending_adoption_timeout_minutes: int = Field(
        default=30,
        description="Age after which a pending adoption is reconciled"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_enabled: bool = Field(
        default=True,
        description="Whether payment endpoints are rate limited"
    )
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="Tree Adoption API",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=5000, description="Process port")
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
