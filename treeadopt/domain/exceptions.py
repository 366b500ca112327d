"""
Domain exceptions.

Every error the service raises on purpose derives from TreeAdoptionError and
carries the HTTP status and the message shown to the user. The error handler
middleware turns them into ``{"error": message, **details}`` responses.
"""
from typing import Any, Dict, Optional


class TreeAdoptionError(Exception):
    """Base class for user-facing errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}


class ValidationError(TreeAdoptionError):
    """Rejected input; nothing was changed."""

    status_code = 400


class SessionError(TreeAdoptionError):
    """Missing, unknown or expired session."""

    status_code = 401


class NotFoundError(TreeAdoptionError):
    status_code = 404


class TreeUnavailableError(TreeAdoptionError):
    """The tree was adopted by someone else."""

    status_code = 409

    def __init__(self, tree_id: str, message: str = "Tree no longer available"):
        super().__init__(message, details={"tree_id": tree_id})
        self.tree_id = tree_id


class CapacityError(TreeAdoptionError):
    status_code = 409


class PaymentProviderError(TreeAdoptionError):
    """
    Failure reported by the payment provider.

    The provider's type and code are echoed to the caller verbatim.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        error_type: Optional[str] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(
            message,
            status_code=status_code,
            details={"type": error_type, "code": code},
        )
        self.error_type = error_type
        self.code = code


class PaymentDeclinedError(PaymentProviderError):
    """Card declined or failed provider-side validation."""

    status_code = 402


class AdoptionRecordError(TreeAdoptionError):
    """
    The payment went through but the adoption record could not be written.

    This is the one state the service cannot repair on its own.
    """

    status_code = 500

    def __init__(self, reason: str, payment_id: Optional[str] = None):
        super().__init__(
            f"Error processing adoption: {reason}. Please contact support.",
            details={"payment_id": payment_id},
        )
        self.payment_id = payment_id


class ExternalAPIError(TreeAdoptionError):
    """Error talking to a third-party HTTP API."""

    status_code = 502
