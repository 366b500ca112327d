"""
Global error handling middleware.

Every error leaves the service as ``{"error": message, ...}`` JSON.
"""
import logging
from typing import Any, Callable, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from treeadopt.domain.exceptions import AdoptionRecordError, PaymentProviderError, TreeAdoptionError


logger = logging.getLogger(__name__)


def _request_context(request: Request, **extra: Any) -> Dict[str, Any]:
    return {"path": request.url.path, "method": request.method, **extra}


def error_response(status_code: int, message: str, **details: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **details})


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Translates exceptions escaping the route handlers into JSON responses.

    - TreeAdoptionError subclasses keep their status code, and their details
      are merged into the body (the provider's ``type``/``code`` for payment
      errors, ``tree_id`` for a lost tree, ``payment_id`` for recording failures)
    - A bare ValueError is a 400
    - Anything else is a 500 with a generic message
    """

    async def dispatch(self, request: Request, call_next: Callable):
        try:
            return await call_next(request)

        except TreeAdoptionError as e:
            context = _request_context(request, status_code=e.status_code, error_type=type(e).__name__)
            if isinstance(e, AdoptionRecordError):
                # Money was taken without a record; support has to step in
                logger.critical(f"Adoption not recorded for payment {e.payment_id}: {e.message}", extra=context)
            elif isinstance(e, PaymentProviderError) or e.status_code >= 500:
                logger.error(f"{type(e).__name__}: {e.message}", extra=context)
            else:
                logger.warning(f"Request rejected: {e.message}", extra=context)
            return error_response(e.status_code, e.message, **e.details)

        except ValueError as e:
            logger.warning(f"Validation error: {e}", extra=_request_context(request))
            return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", detail=str(e))

        except Exception as e:
            logger.exception(f"Unhandled exception: {e}", extra=_request_context(request))
            return error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Internal server error",
                detail="An unexpected error occurred",
            )
