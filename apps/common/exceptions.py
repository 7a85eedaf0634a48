from rest_framework import exceptions
from rest_framework.views import exception_handler


class LedgerError(Exception):
    default_code = "error"

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Caller-supplied data breaks an entity invariant. Nothing was written."""

    default_code = "invalid"

    def __init__(self, message, field=None):
        super().__init__(message)
        self.field = field


class NotFoundError(LedgerError):
    default_code = "not_found"


def _as_api_exception(exc):
    if isinstance(exc, NotFoundError):
        return exceptions.NotFound(exc.message)
    if isinstance(exc, ValidationError):
        return exceptions.ValidationError({exc.field or "non_field_errors": [exc.message]})
    return exc


def api_exception_handler(exc, context):
    exc = _as_api_exception(exc)
    response = exception_handler(exc, context)
    if response is None:
        return response

    if isinstance(response.data, dict):
        detail = response.data.get("detail", "Request failed")
        fields = {k: v for k, v in response.data.items() if k != "detail"}
    else:
        detail = "Request failed"
        fields = {}

    response.data = {
        "code": getattr(exc, "default_code", "error"),
        "detail": detail,
        "fields": fields,
    }
    return response
