"""
Domain error taxonomy and the DRF exception handler that renders it.

Service code raises the errors below; views never translate them by hand.
The handler turns them (and DRF's own exceptions) into the JSON envelopes the
dashboard expects: ``{"error": ..., "details": ...}`` for client errors and
``{"message": ...}`` for unexpected failures.
"""
import logging

from django.core.exceptions import PermissionDenied
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Base class for errors raised by business logic"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Request could not be processed'

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_payload(self):
        payload = {'error': self.message}
        if self.details is not None:
            payload['details'] = self.details
        return payload


class ValidationError(DomainError):
    default_message = 'Validation failed'


class CapacityExceeded(ValidationError):
    """Raised when a dispatch asks for more than a crusher run has left"""

    def __init__(self, available):
        self.available = available
        super().__init__(f'Cannot dispatch more than available quantity ({format_quantity(available)})')


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found'


class AuthorizationError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'You do not have permission to perform this action'


def get_or_not_found(queryset, pk, label):
    """Fetch ``pk`` from a model or queryset, raising NotFoundError('<label> not found')"""
    manager = getattr(queryset, '_default_manager', queryset)
    try:
        return manager.get(pk=pk)
    except (manager.model.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f'{label} not found') from None


def format_quantity(value):
    """Render a Decimal quantity without trailing zeros (59.797, 10, 0.5)"""
    if value is None:
        return None
    text = format(value, 'f')
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text or '0'


def _detail_message(detail):
    if isinstance(detail, (list, tuple)) and detail:
        return str(detail[0])
    if isinstance(detail, dict) and 'detail' in detail:
        return str(detail['detail'])
    return str(detail)


def api_exception_handler(exc, context):
    """REST_FRAMEWORK['EXCEPTION_HANDLER'] for the whole API"""
    if isinstance(exc, DomainError):
        return Response(exc.as_payload(), status=exc.status_code)

    if isinstance(exc, drf_exceptions.ValidationError):
        return Response(
            {'error': 'Validation failed', 'details': exc.detail},
            status=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, Http404):
        message = str(exc) or 'Not found'
        return Response({'error': message}, status=status.HTTP_404_NOT_FOUND)

    if isinstance(exc, PermissionDenied):
        return Response({'error': AuthorizationError.default_message}, status=status.HTTP_403_FORBIDDEN)

    if isinstance(exc, drf_exceptions.APIException):
        response = Response({'error': _detail_message(exc.detail)}, status=exc.status_code)
        auth_header = getattr(exc, 'auth_header', None)
        if auth_header:
            response['WWW-Authenticate'] = auth_header
        wait = getattr(exc, 'wait', None)
        if wait:
            response['Retry-After'] = '%d' % wait
        return response

    request = context.get('request')
    logger.error(
        "Unhandled error on %s %s",
        getattr(request, 'method', '-'), getattr(request, 'path', '-'),
        exc_info=exc,
    )
    return Response({'message': 'Internal server error'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
