"""Core middleware."""
import logging
import time
import uuid

from django.conf import settings
from django.utils.cache import patch_cache_control

logger = logging.getLogger("roofpro")


def _is_api_path(path: str) -> bool:
    return path.startswith(getattr(settings, "API_PATH_PREFIX", "/api/"))


class NoStoreAPIMiddleware:
    """Mark API responses as private/no-store and tag them with a request id.

    Commission amounts and draw balances must never sit in a shared cache.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if not _is_api_path(request.path):
            return self.get_response(request)

        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000

        patch_cache_control(
            response,
            private=True,
            no_cache=True,
            no_store=True,
            must_revalidate=True,
            max_age=0,
        )
        response["Pragma"] = "no-cache"
        response["X-Request-ID"] = request_id

        logger.debug(
            "%s %s -> %s in %.1fms",
            request.method,
            request.path,
            response.status_code,
            elapsed_ms,
            extra={"request_id": request_id},
        )
        return response
