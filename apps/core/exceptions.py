"""
Domain exceptions raised by the service layer and their REST mapping.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from django_fsm import TransitionNotAllowed

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Base class for business rule violations."""

    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be processed"

    def __init__(self, message=None, code=None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)


class NotFoundError(StorefrontError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InsufficientBalanceError(StorefrontError):
    code = "insufficient_balance"
    default_message = "Insufficient balance"


class InvalidAmountError(StorefrontError):
    code = "invalid_amount"
    default_message = "Amount must be greater than zero"


class RecipientNotFoundError(NotFoundError):
    code = "recipient_not_found"
    default_message = "Recipient not found. Please check the email or phone number."


class SelfTransferError(StorefrontError):
    code = "self_transfer"
    default_message = "You cannot transfer to yourself"


class InvalidStateError(StorefrontError):
    code = "invalid_state"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Operation not allowed in the current state"


class PermissionDeniedError(StorefrontError):
    code = "permission_denied"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action"


class InvalidPinError(StorefrontError):
    code = "invalid_pin"
    default_message = "Invalid verification PIN"


class InvalidCouponError(StorefrontError):
    code = "invalid_coupon"
    default_message = "Invalid coupon code"


def api_exception_handler(exc, context):
    """
    DRF exception handler that renders domain errors as {"error", "code"}.

    Anything that is not a domain error falls through to the stock handler.
    """
    if isinstance(exc, TransitionNotAllowed):
        exc = InvalidStateError(str(exc) or None)

    if isinstance(exc, StorefrontError):
        view = context.get("view")
        logger.info(
            f"Domain error in {view.__class__.__name__ if view else 'unknown view'}: "
            f"{exc.code} - {exc.message}"
        )
        return Response({"error": exc.message, "code": exc.code}, status=exc.status_code)

    return exception_handler(exc, context)
