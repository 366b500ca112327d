"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from treeadopt.api.rate_limit import limiter
from treeadopt.api.v1.routers import adoptions, community, media, payments, site, trees, users
from treeadopt.config import settings
from treeadopt.infrastructure.media_storage_client import close_media_client
from treeadopt.infrastructure.tree_chat_client import close_chat_client
from treeadopt.middleware.error_handler import ErrorHandlerMiddleware

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Log level: {settings.log_level}")
    logger.info(f"Document store backend: {settings.document_store_backend}")
    logger.info(f"Rate limit: {settings.rate_limit_requests} requests/minute")
    if settings.stripe_secret_key:
        logger.info("Stripe key loaded: Yes")
    else:
        logger.warning("Stripe key loaded: No - payment requests will fail")
    logger.info(
        f"Cloudinary config loaded: cloud_name={bool(settings.cloudinary_cloud_name)}, "
        f"api_key={bool(settings.cloudinary_api_key)}, "
        f"api_secret={bool(settings.cloudinary_api_secret)}, "
        f"upload_preset={bool(settings.cloudinary_upload_preset)}"
    )

    yield

    # Shutdown
    logger.info("Shutting down application...")
    await close_media_client()
    await close_chat_client()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Tree Adoption API

    Backend for the tree adoption site: browse trees, adopt one through a
    card payment, and take part in the community.

    ## Adoption checkout

    1. Start a session and select a tree
    2. Pick a plan (1, 2 or 5 years) and submit adopter details
    3. A payment intent is created and a pending adoption is stored
    4. The browser confirms the card payment with the client secret
    5. The adoption is confirmed, the user's totals are updated and the
       tree is marked adopted
    6. Pending adoptions left behind by interrupted checkouts are resolved
       by the reconciliation job

    ## Users

    Profiles for signed-in users and a leaderboard ranked by CO₂ impact.

    ## Community

    Stories with comments and likes, events with capacity-limited
    participation, and discussion topics with replies.
    """,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware with configurable origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add global error handling middleware
app.add_middleware(ErrorHandlerMiddleware)

# Include routers
for module in (payments, adoptions, trees, users, community, media, site):
    app.include_router(module.router, prefix="/api")


@app.get("/", tags=["health"])
async def root():
    """
    Root endpoint for health check.

    Returns:
        Status message
    """
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
    }


@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        Health status
    """
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
