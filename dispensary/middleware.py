import logging
import time

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    """One log line per API request: method, path, status and duration."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if not request.path.startswith('/api/'):
            return self.get_response(request)

        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = (time.monotonic() - started) * 1000

        # bodies are never logged, they carry passwords and tokens
        level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(level, f"{request.method} {request.path} -> {response.status_code} ({elapsed_ms:.0f} ms)")
        return response
