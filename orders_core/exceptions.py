# orders_core/exceptions.py

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from .errors import LabTrackError, StoreError

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """
    DRF exception handler: typed workflow errors become JSON responses with
    their own status code; everything else goes through DRF's default.
    """
    if isinstance(exc, LabTrackError):
        if isinstance(exc, StoreError):
            view = context.get("view")
            logger.error("%s failed: %s", view.__class__.__name__ if view else "request", exc.message)
        return Response(exc.as_dict(), status=exc.http_status)

    return exception_handler(exc, context)
