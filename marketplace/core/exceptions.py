"""
Service-layer errors and the DRF exception handler.

Services raise a ServiceError subclass; views turn it into
``{'error': message}`` with the matching HTTP status.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_response(self):
        return Response({'error': self.message}, status=self.status_code)


class BadRequestError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


def api_exception_handler(exc, context):
    """DRF exception handler that also covers ServiceError and unexpected errors"""
    if isinstance(exc, ServiceError):
        return exc.to_response()

    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    logger.error(f"Unhandled error in {getattr(view, '__name__', view)}: {str(exc)}", exc_info=True)
    return Response({'error': 'An unexpected error occurred'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
