"""
Domain exceptions and the DRF exception handler.

Views never catch service errors themselves; everything propagates here
and leaves as the standard envelope.  Validation failures become 422
with field-level ``errors``, missing records 404, refused status moves
and stale updates 409, anything unexpected 500.
"""
import logging

from django.core.exceptions import ObjectDoesNotExist, ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, ValidationError
from rest_framework.fields import get_error_detail
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from core.responses import envelope

logger = logging.getLogger(__name__)


class TransitionError(APIException):
    """A status change the transition table does not allow."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This status change is not allowed.'
    default_code = 'invalid_transition'

    def __init__(self, current: str, new: str, kind: str = 'record'):
        self.current = current
        self.new = new
        super().__init__(f'Cannot move {kind} from {current} to {new}.')


class VersionConflict(APIException):
    """An update made against a stale ``version_counter``."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Assessment has been modified by another user. Please refresh and try again.'
    default_code = 'version_conflict'

    def __init__(self, current: int, submitted: int):
        self.data = {'current_version_counter': current, 'submitted_version_counter': submitted}
        super().__init__()


class Gone(APIException):
    status_code = status.HTTP_410_GONE
    default_detail = 'This link has expired.'
    default_code = 'gone'


def _message_for(data) -> str:
    if isinstance(data, dict):
        detail = data.get('detail')
        if detail is not None:
            return str(detail)
    if isinstance(data, list) and data:
        return str(data[0])
    return str(data)


def api_exception_handler(exc, context):
    if isinstance(exc, ObjectDoesNotExist):
        exc = NotFound(str(exc) or 'Not found.')
    elif isinstance(exc, DjangoValidationError):
        exc = ValidationError(get_error_detail(exc))

    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.error('Unhandled error in %s', type(view).__name__ if view else 'view', exc_info=exc)
        return Response(envelope(success=False, message=str(exc)), status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, ValidationError):
        errors = resp.data if isinstance(resp.data, dict) else {'non_field_errors': resp.data}
        resp.data = envelope(success=False, message='Validation failed', errors=errors)
        resp.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        return resp

    resp.data = envelope(getattr(exc, 'data', None), success=False, message=_message_for(resp.data))
    return resp
