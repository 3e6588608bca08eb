from io import StringIO
from unittest.mock import Mock, patch

from django.apps import apps
from django.core.management import call_command
from django.core.management.base import CommandError
from django.http import HttpResponse
from django.test import RequestFactory, SimpleTestCase, override_settings
from django.urls import path

from .classifiers import Included, StaticAssetClassifier, get_classifier
from .config import CacheExpirationConfig, InvalidConfiguration
from .middleware import CacheExpirationMiddleware

FIXED_NOW = 1_700_000_000  # Tue, 14 Nov 2023 22:13:20 GMT


class FixedClassifier:
    def __init__(self, included=Included.AGGREGATED):
        self.included = included
        self.calls = []

    def classify(self, request):
        self.calls.append(request)
        return self.included


class AsyncFixedClassifier:
    def __init__(self, included=Included.AGGREGATED):
        self.included = included

    async def classify(self, request):
        return self.included


class BrokenClassifier:
    def classify(self, request):
        raise RuntimeError("classifier unavailable")


NOT_A_CLASSIFIER = object()


def bundle_view(request):
    return HttpResponse("console.log('bundle');", content_type="application/javascript")


urlpatterns = [
    path("static/app.3f2a.js", bundle_view),
    path("api/status/", bundle_view),
]


class CacheExpirationConfigTests(SimpleTestCase):
    def test_default_max_age_is_one_year(self):
        config = CacheExpirationConfig()
        self.assertEqual(config.max_age, 31536000)
        self.assertEqual(config.cache_control, "public, max-age=31536000")

    def test_set_max_age_recomputes_header(self):
        config = CacheExpirationConfig()
        config.set_max_age(60)
        self.assertEqual(config.max_age, 60)
        self.assertEqual(config.cache_control, "public, max-age=60")

    def test_non_positive_max_age_rejected_and_prior_value_kept(self):
        config = CacheExpirationConfig(max_age=120)
        for bad in (0, -1, -31536000):
            with self.assertRaises(InvalidConfiguration) as ctx:
                config.set_max_age(bad)
            self.assertIn(str(bad), str(ctx.exception))
        self.assertEqual(config.max_age, 120)
        self.assertEqual(config.cache_control, "public, max-age=120")

    def test_non_integer_max_age_rejected(self):
        config = CacheExpirationConfig()
        for bad in (True, 1.5, "60", None):
            with self.assertRaises(InvalidConfiguration):
                config.set_max_age(bad)
        self.assertEqual(config.cache_control, "public, max-age=31536000")

    def test_constructor_rejects_zero(self):
        with self.assertRaises(InvalidConfiguration):
            CacheExpirationConfig(max_age=0)

    @override_settings(CACHE_MAX_AGE="3600", CACHE_REGENERATE_HEADERS_INTERVAL=5000)
    def test_from_settings_coerces_and_keeps_legacy_interval(self):
        config = CacheExpirationConfig.from_settings()
        self.assertEqual(config.cache_control, "public, max-age=3600")
        self.assertEqual(config.regenerate_headers_interval, 5000)

    @override_settings(CACHE_MAX_AGE="one year")
    def test_from_settings_rejects_garbage(self):
        with self.assertRaises(InvalidConfiguration):
            CacheExpirationConfig.from_settings()

    @override_settings(CACHE_MAX_AGE=3600.9)
    def test_from_settings_rejects_float(self):
        with self.assertRaises(InvalidConfiguration):
            CacheExpirationConfig.from_settings()

    @override_settings(CACHE_MAX_AGE=True)
    def test_from_settings_rejects_bool(self):
        with self.assertRaises(InvalidConfiguration):
            CacheExpirationConfig.from_settings()


class StaticAssetClassifierTests(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.classifier = StaticAssetClassifier(prefixes=["/static/", "bundles/"], aggregation_enabled=True)

    def test_static_get_is_aggregated(self):
        request = self.factory.get("/static/js/app.3f2a.js")
        self.assertIs(self.classifier.classify(request), Included.AGGREGATED)

    def test_head_is_aggregated(self):
        request = self.factory.head("/static/css/site.9b1c.css")
        self.assertIs(self.classifier.classify(request), Included.AGGREGATED)

    def test_relative_prefix_is_rooted(self):
        request = self.factory.get("/bundles/vendor.js")
        self.assertIs(self.classifier.classify(request), Included.AGGREGATED)

    def test_post_is_plain(self):
        request = self.factory.post("/static/js/app.3f2a.js")
        self.assertIs(self.classifier.classify(request), Included.PLAIN)

    def test_other_paths_are_plain(self):
        request = self.factory.get("/api/status/")
        self.assertIs(self.classifier.classify(request), Included.PLAIN)

    def test_disabled_aggregation_is_plain(self):
        classifier = StaticAssetClassifier(prefixes=["/static/"], aggregation_enabled=False)
        request = self.factory.get("/static/js/app.3f2a.js")
        self.assertIs(classifier.classify(request), Included.PLAIN)

    @override_settings(
        STATIC_URL="/assets/",
        CACHE_EXPIRATION_AGGREGATED_PREFIXES=["/dist/"],
        CACHE_EXPIRATION_AGGREGATION_ENABLED=True,
    )
    def test_prefixes_default_to_settings(self):
        classifier = StaticAssetClassifier()
        self.assertIs(classifier.classify(self.factory.get("/assets/app.js")), Included.AGGREGATED)
        self.assertIs(classifier.classify(self.factory.get("/dist/app.js")), Included.AGGREGATED)
        self.assertIs(classifier.classify(self.factory.get("/static/app.js")), Included.PLAIN)

    @override_settings(CACHE_EXPIRATION_AGGREGATED_PREFIXES="/dist/", CACHE_EXPIRATION_AGGREGATION_ENABLED=True)
    def test_string_prefix_setting_is_rejected(self):
        with self.assertRaises(InvalidConfiguration) as ctx:
            StaticAssetClassifier()
        self.assertIn("/dist/", str(ctx.exception))


class GetClassifierTests(SimpleTestCase):
    def test_default_is_static_asset_classifier(self):
        self.assertIsInstance(get_classifier(), StaticAssetClassifier)

    @override_settings(CACHE_EXPIRATION_CLASSIFIER="cache_expiration.tests.FixedClassifier")
    def test_class_from_settings_is_instantiated(self):
        classifier = get_classifier()
        self.assertIsInstance(classifier, FixedClassifier)

    def test_unknown_path_is_invalid(self):
        with self.assertRaises(InvalidConfiguration):
            get_classifier("cache_expiration.tests.MissingClassifier")

    def test_object_without_classify_is_invalid(self):
        with self.assertRaises(InvalidConfiguration):
            get_classifier("cache_expiration.tests.NOT_A_CLASSIFIER")


class CacheExpirationMiddlewareTests(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.get_response = Mock(return_value=HttpResponse("body"))

    def _middleware(self, classifier, config=None):
        return CacheExpirationMiddleware(self.get_response, classifier=classifier, config=config)

    def test_aggregated_uses_default_cache_control(self):
        request = self.factory.get("/static/app.js")
        response = self._middleware(FixedClassifier())(request)
        self.assertEqual(response["Cache-Control"], "public, max-age=31536000")
        self.assertTrue(response.has_header("Expires"))
        self.get_response.assert_called_once_with(request)

    @patch("cache_expiration.middleware.time")
    def test_expires_is_now_plus_max_age(self, mock_time):
        mock_time.time.return_value = FIXED_NOW
        config = CacheExpirationConfig()
        config.set_max_age(60)
        response = self._middleware(FixedClassifier(), config)(self.factory.get("/static/app.js"))
        self.assertEqual(response["Expires"], "Tue, 14 Nov 2023 22:14:20 GMT")
        self.assertEqual(response["Cache-Control"], "public, max-age=60")

    def test_plain_sets_no_headers(self):
        request = self.factory.get("/api/status/")
        response = self._middleware(FixedClassifier(Included.PLAIN))(request)
        self.assertFalse(response.has_header("Expires"))
        self.assertFalse(response.has_header("Cache-Control"))
        self.get_response.assert_called_once_with(request)

    def test_downstream_cache_control_is_replaced(self):
        self.get_response.return_value["Cache-Control"] = "max-age=60, public"
        response = self._middleware(FixedClassifier())(self.factory.get("/static/app.js"))
        self.assertEqual(response["Cache-Control"], "public, max-age=31536000")

    def test_non_http_request_passes_through(self):
        classifier = FixedClassifier()
        exchange = object()
        sentinel = object()
        self.get_response.return_value = sentinel
        result = self._middleware(classifier)(exchange)
        self.assertIs(result, sentinel)
        self.assertEqual(classifier.calls, [])
        self.get_response.assert_called_once_with(exchange)

    def test_non_http_response_is_untouched(self):
        sentinel = object()
        self.get_response.return_value = sentinel
        result = self._middleware(FixedClassifier())(self.factory.get("/static/app.js"))
        self.assertIs(result, sentinel)
        self.get_response.assert_called_once()

    def test_classifier_failure_propagates(self):
        with self.assertRaises(RuntimeError):
            self._middleware(BrokenClassifier())(self.factory.get("/static/app.js"))
        self.get_response.assert_not_called()

    def test_async_classifier_in_sync_mode(self):
        response = self._middleware(AsyncFixedClassifier())(self.factory.get("/static/app.js"))
        self.assertEqual(response["Cache-Control"], "public, max-age=31536000")
        self.get_response.assert_called_once()

    def test_stamp_is_logged(self):
        middleware = self._middleware(FixedClassifier())
        with self.assertLogs("cache_expiration.middleware", level="DEBUG") as logs:
            middleware(self.factory.get("/static/app.js"))
        self.assertIn("/static/app.js", logs.output[0])

    @override_settings(CACHE_MAX_AGE=600, CACHE_EXPIRATION_AGGREGATION_ENABLED=True)
    def test_defaults_come_from_settings(self):
        middleware = CacheExpirationMiddleware(self.get_response)
        response = middleware(self.factory.get("/static/app.js"))
        self.assertEqual(response["Cache-Control"], "public, max-age=600")

    @override_settings(CACHE_MAX_AGE=0)
    def test_invalid_settings_prevent_construction(self):
        with self.assertRaises(InvalidConfiguration):
            CacheExpirationMiddleware(self.get_response)


class AsyncCacheExpirationMiddlewareTests(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.calls = []

    async def _get_response(self, request):
        self.calls.append(request)
        return HttpResponse("body")

    async def test_aggregated_async(self):
        middleware = CacheExpirationMiddleware(self._get_response, classifier=AsyncFixedClassifier())
        request = self.factory.get("/static/app.js")
        response = await middleware(request)
        self.assertEqual(response["Cache-Control"], "public, max-age=31536000")
        self.assertEqual(self.calls, [request])

    async def test_plain_async(self):
        middleware = CacheExpirationMiddleware(self._get_response, classifier=FixedClassifier(Included.PLAIN))
        response = await middleware(self.factory.get("/api/status/"))
        self.assertFalse(response.has_header("Cache-Control"))
        self.assertEqual(len(self.calls), 1)

    async def test_non_http_request_passes_through_async(self):
        classifier = FixedClassifier()
        middleware = CacheExpirationMiddleware(self._get_response, classifier=classifier)
        exchange = object()
        response = await middleware(exchange)
        self.assertFalse(response.has_header("Cache-Control"))
        self.assertEqual(classifier.calls, [])
        self.assertEqual(self.calls, [exchange])

    async def test_classifier_failure_propagates_async(self):
        middleware = CacheExpirationMiddleware(self._get_response, classifier=BrokenClassifier())
        with self.assertRaises(RuntimeError):
            await middleware(self.factory.get("/static/app.js"))
        self.assertEqual(self.calls, [])


@override_settings(ROOT_URLCONF="cache_expiration.tests", CACHE_EXPIRATION_AGGREGATION_ENABLED=True)
class MiddlewareStackTests(SimpleTestCase):
    def test_static_bundle_gets_far_future_headers(self):
        response = self.client.get("/static/app.3f2a.js")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Cache-Control"], "public, max-age=31536000")
        self.assertTrue(response.has_header("Expires"))

    def test_dynamic_view_is_not_cached(self):
        response = self.client.get("/api/status/")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.has_header("Expires"))


class StartupValidationTests(SimpleTestCase):
    @override_settings(CACHE_MAX_AGE=-5)
    def test_ready_rejects_bad_max_age(self):
        with self.assertRaises(InvalidConfiguration) as ctx:
            apps.get_app_config("cache_expiration").ready()
        self.assertIn("-5", str(ctx.exception))

    @override_settings(CACHE_EXPIRATION_CLASSIFIER="cache_expiration.nope.Classifier")
    def test_ready_rejects_bad_classifier(self):
        with self.assertRaises(InvalidConfiguration):
            apps.get_app_config("cache_expiration").ready()


@override_settings(CACHE_MAX_AGE=60, CACHE_EXPIRATION_AGGREGATION_ENABLED=True)
class CacheHeadersCommandTests(SimpleTestCase):
    def test_reports_headers_per_path(self):
        out = StringIO()
        call_command("cacheheaders", "/static/app.3f2a.js", "/api/status/", stdout=out)
        output = out.getvalue()
        self.assertIn("Cache-Control: public, max-age=60", output)
        self.assertIn("/static/app.3f2a.js: aggregated", output)
        self.assertIn("/api/status/: not cached", output)

    @override_settings(CACHE_MAX_AGE=0)
    def test_bad_config_is_command_error(self):
        with self.assertRaises(CommandError):
            call_command("cacheheaders", stdout=StringIO())
