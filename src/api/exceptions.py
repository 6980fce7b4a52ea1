"""DRF exception handler that turns domain errors into JSON 4xx responses."""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from compliance.exceptions import ComplianceBlocked

logger = logging.getLogger("roofpro")


def roofpro_exception_handler(exc, context):
    """Map service-layer exceptions onto HTTP responses.

    ``ComplianceBlocked`` and ``PermissionError`` become 403, any other
    ``ValueError`` a 400. Everything else goes through DRF's handler.
    """
    if isinstance(exc, ComplianceBlocked):
        logger.info("Blocked by compliance (%s): %s", exc.code, exc)
        return Response(exc.as_dict(), status=status.HTTP_403_FORBIDDEN)
    if isinstance(exc, PermissionError):
        return Response({"detail": str(exc) or "Permission denied."}, status=status.HTTP_403_FORBIDDEN)
    if isinstance(exc, ValueError):
        return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    return exception_handler(exc, context)
