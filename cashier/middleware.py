import logging

from django.conf import settings

from .clock import Clock

logger = logging.getLogger("cashier.requests")


class RequestLogMiddleware:
    """Logs every request with the store-local timestamp."""

    def __init__(self, get_response):
        self.get_response = get_response
        self.clock = Clock(settings.STORE_TIMEZONE)

    def __call__(self, request):
        response = self.get_response(request)
        logger.info("[%s] %s %s -> %s", self.clock.timestamp(), request.method,
                    request.path, response.status_code)
        return response
