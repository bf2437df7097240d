"""
Marketplace error taxonomy and the DRF exception handler that renders it.

Field validation failures use django.core.exceptions.ValidationError with a
message dict produced by the marketplace forms. Absent references on reads are
returned as None / [] rather than raised; NotFoundError is only raised by
operations that must act on an existing record.
"""
import logging

from django.core.exceptions import PermissionDenied, ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    """Base class for domain errors raised by the marketplace components."""
    code = "marketplace_error"
    http_status = status.HTTP_400_BAD_REQUEST


class NotFoundError(MarketplaceError):
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND


class BusinessRuleError(MarketplaceError):
    code = "business_rule"
    http_status = status.HTTP_400_BAD_REQUEST


class AuthorizationError(MarketplaceError):
    code = "forbidden"
    http_status = status.HTTP_403_FORBIDDEN


def error_payload(message, code=None, field_errors=None):
    """Standard JSON error shape consumed by the client toast handler."""
    payload = {"status": "error", "message": str(message)}
    if code is not None:
        payload["code"] = code
    if field_errors:
        payload["field_errors"] = field_errors
    return payload


def validation_field_errors(exc):
    if hasattr(exc, "message_dict"):
        return {field: [str(m) for m in msgs] for field, msgs in exc.message_dict.items()}
    return {"__all__": [str(m) for m in exc.messages]}


def api_exception_handler(exc, context):
    """Translate domain errors to HTTP responses; defer everything else to DRF."""
    if isinstance(exc, ValidationError):
        field_errors = validation_field_errors(exc)
        first = next(iter(field_errors.values()), ["Invalid input"])
        return Response(
            error_payload(first[0] if first else "Invalid input", code="invalid", field_errors=field_errors),
            status=status.HTTP_400_BAD_REQUEST,
        )
    if isinstance(exc, MarketplaceError):
        return Response(error_payload(exc, code=exc.code), status=exc.http_status)
    if isinstance(exc, PermissionDenied):
        return Response(error_payload(str(exc) or "Permission denied", code="forbidden"), status=status.HTTP_403_FORBIDDEN)

    response = exception_handler(exc, context)
    if response is None:
        view = context.get("view")
        logger.exception("Unhandled API error in %s", type(view).__name__ if view else "unknown view", exc_info=exc)
        return None
    detail = response.data.get("detail") if isinstance(response.data, dict) else None
    if detail is not None:
        response.data = error_payload(detail, code=getattr(detail, "code", None))
    return response
