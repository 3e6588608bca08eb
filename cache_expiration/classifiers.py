"""Decide whether a request targets an aggregated (long-lived cacheable) resource."""

from __future__ import annotations

import enum
import inspect
import typing as _t

from django.conf import settings
from django.utils.module_loading import import_string

from .config import InvalidConfiguration

DEFAULT_CLASSIFIER = "cache_expiration.classifiers.StaticAssetClassifier"


class Included(enum.Enum):
    """How a resource is included in the page."""

    PLAIN = "plain"
    AGGREGATED = "aggregated"


class ResourceClassifier(_t.Protocol):
    def classify(self, request) -> Included:
        ...


class StaticAssetClassifier:
    """
    Treat GET/HEAD requests under the static prefixes as aggregated.
    Aggregation is switched off in DEBUG unless CACHE_EXPIRATION_AGGREGATION_ENABLED says otherwise,
    so unbundled development assets never get far-future headers.
    """

    safe_methods = ("GET", "HEAD")

    def __init__(self, prefixes: _t.Iterable[str] | None = None, aggregation_enabled: bool | None = None):
        if prefixes is None:
            prefixes = [getattr(settings, "STATIC_URL", "/static/") or ""]
            extra = getattr(settings, "CACHE_EXPIRATION_AGGREGATED_PREFIXES", [])
            if isinstance(extra, str):
                raise InvalidConfiguration(
                    f"CACHE_EXPIRATION_AGGREGATED_PREFIXES must be a list of path prefixes, not a string ({extra!r})"
                )
            prefixes += list(extra)
        self.prefixes = tuple(_normalize_prefix(p) for p in prefixes if p)
        if aggregation_enabled is None:
            aggregation_enabled = getattr(settings, "CACHE_EXPIRATION_AGGREGATION_ENABLED", not settings.DEBUG)
        self.aggregation_enabled = bool(aggregation_enabled)

    def classify(self, request) -> Included:
        if not self.aggregation_enabled or request.method not in self.safe_methods:
            return Included.PLAIN
        if self.prefixes and request.path.startswith(self.prefixes):
            return Included.AGGREGATED
        return Included.PLAIN


def _normalize_prefix(prefix: str) -> str:
    # STATIC_URL may be relative ("static/") since Django 3.1.
    if "://" in prefix or prefix.startswith("/"):
        return prefix
    return "/" + prefix


def get_classifier(path: str | None = None) -> ResourceClassifier:
    """Resolve the classifier named by CACHE_EXPIRATION_CLASSIFIER (or `path`)."""
    path = path or getattr(settings, "CACHE_EXPIRATION_CLASSIFIER", DEFAULT_CLASSIFIER)
    try:
        target = import_string(path)
    except ImportError as exc:
        raise InvalidConfiguration(f"CACHE_EXPIRATION_CLASSIFIER could not be imported ({path!r}): {exc}") from exc

    classifier = target() if inspect.isclass(target) else target
    if not callable(getattr(classifier, "classify", None)):
        raise InvalidConfiguration(f"CACHE_EXPIRATION_CLASSIFIER must provide a classify(request) method ({path!r})")
    return classifier
