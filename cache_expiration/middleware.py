import inspect
import logging
import time

from asgiref.sync import async_to_sync, iscoroutinefunction, markcoroutinefunction
from django.http import HttpRequest
from django.http.response import HttpResponseBase
from django.utils.http import http_date

from .classifiers import Included, get_classifier
from .config import CacheExpirationConfig

logger = logging.getLogger(__name__)


async def _resolve(value):
    return await value


class CacheExpirationMiddleware:
    """
    Add far-future Expires/Cache-Control headers to aggregated static resources.
    Intended for versioned JS/CSS that is renamed whenever its content changes;
    the classifier decides which requests qualify.
    """

    sync_capable = True
    async_capable = True

    def __init__(self, get_response, classifier=None, config=None):
        self.get_response = get_response
        self.config = config if config is not None else CacheExpirationConfig.from_settings()
        self.classifier = classifier if classifier is not None else get_classifier()
        self.async_mode = iscoroutinefunction(get_response)
        if self.async_mode:
            markcoroutinefunction(self)
        logger.info(
            "Cache expiration enabled: Cache-Control=%r classifier=%s",
            self.config.cache_control,
            type(self.classifier).__name__,
        )

    def __call__(self, request):
        if self.async_mode:
            return self.__acall__(request)
        if not isinstance(request, HttpRequest):
            return self.get_response(request)

        included = self.classifier.classify(request)
        if inspect.isawaitable(included):
            included = async_to_sync(_resolve)(included)
        response = self.get_response(request)
        return self.apply(request, response, included)

    async def __acall__(self, request):
        if not isinstance(request, HttpRequest):
            return await self.get_response(request)

        included = self.classifier.classify(request)
        if inspect.isawaitable(included):
            included = await included
        response = await self.get_response(request)
        return self.apply(request, response, included)

    def apply(self, request, response, included):
        """Stamp the cache headers when the resource is aggregated."""
        if included is not Included.AGGREGATED or not isinstance(response, HttpResponseBase):
            return response
        response["Expires"] = http_date(time.time() + self.config.max_age)
        response["Cache-Control"] = self.config.cache_control
        logger.debug("Far-future cache headers set for %s", request.path)
        return response
