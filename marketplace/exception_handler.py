"""
REST framework exception handler for engine errors.

Engine errors are rendered as ``{"detail": ..., "code": ...}`` with the
status their class declares. Django model validation errors become 400
responses shaped like serializer errors. Everything else falls through to
REST framework's default handler.
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .exceptions import MarketplaceError

logger = logging.getLogger(__name__)


def _describe_request(context):
    request = context.get('request') if context else None
    if request is None:
        return 'User: anonymous'

    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        who = f'User: {user.email} (ID: {user.pk})'
    else:
        who = 'User: anonymous'

    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0]
    else:
        ip = request.META.get('REMOTE_ADDR')

    return f'{who}, Path: {request.path}, IP: {ip}'


def api_exception_handler(exc, context):
    if isinstance(exc, MarketplaceError):
        logger.warning(
            f"Request refused ({exc.code}): {exc.detail} {_describe_request(context)}"
        )
        return Response(exc.as_dict(), status=exc.status_code)

    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, 'error_dict'):
            data = exc.message_dict
        else:
            data = {'detail': exc.messages}
        logger.warning(f"Model validation failed: {data} {_describe_request(context)}")
        return Response(data, status=status.HTTP_400_BAD_REQUEST)

    return exception_handler(exc, context)
