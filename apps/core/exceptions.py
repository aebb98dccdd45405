"""
Custom Exception Handling for AgentSpace Deals Backend

Provides consistent error response format across all API endpoints.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Custom exception handler that provides consistent error format.

    Error Response Format:
    {
        "error": "Human-readable error message",
        "details": {...}  // Optional, additional context
    }
    """
    if isinstance(exc, APIException):
        data: dict = {'error': exc.message}
        if exc.details:
            data['details'] = exc.details
        return Response(data, status=exc.status_code)

    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if response is not None:
        detail = getattr(exc, 'detail', None)
        error_data: dict = {'error': str(detail) if detail is not None else str(exc)}

        # Handle DRF validation errors specially
        if isinstance(detail, dict):
            error_data['details'] = detail
            messages = []
            for field, errors in detail.items():
                if isinstance(errors, list):
                    messages.append(f"{field}: {', '.join(str(e) for e in errors)}")
                else:
                    messages.append(f"{field}: {errors}")
            error_data['error'] = '; '.join(messages)
        elif isinstance(detail, list):
            error_data['error'] = ', '.join(str(e) for e in detail)

        response.data = error_data
        return response

    logger.exception(f'Unhandled exception: {exc}')
    return Response(
        {'error': 'An unexpected error occurred'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )


class APIException(Exception):
    """
    Base exception class for API errors.

    Usage:
        raise APIException('Something went wrong', status_code=400)
    """
    def __init__(self, message: str, status_code: int = 400, details: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(APIException):
    """Raised when request validation fails."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=400, details=details)
