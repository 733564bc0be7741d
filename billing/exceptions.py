"""
Billing error taxonomy and the unified API exception handler.

Every billing error is a DRF ``APIException`` so services can raise them
directly and views need no translation layer.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class InvalidInput(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'invalid_input'


class NotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class AlreadyExists(APIException):
    """A bill already exists for the visit; carries its number."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Bill already exists.'
    default_code = 'already_exists'

    def __init__(self, detail=None, *, bill_number=None):
        super().__init__(detail)
        self.bill_number = bill_number


class NothingToBill(APIException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = 'No unbilled items found for this visit.'
    default_code = 'nothing_to_bill'


class BillNumberConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Could not allocate a unique bill number, please retry.'
    default_code = 'conflict'


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('unhandled error in %s', context.get('view').__class__.__name__, exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = resp.data
    code = getattr(exc, 'default_code', None) or 'api_error'
    error = {'code': code, 'message': detail}
    bill_number = getattr(exc, 'bill_number', None)
    if bill_number:
        error['billNumber'] = bill_number
    return Response({'ok': False, 'error': error}, status=resp.status_code)
