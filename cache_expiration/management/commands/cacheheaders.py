from django.core.exceptions import ImproperlyConfigured
from django.core.management.base import BaseCommand, CommandError
from django.http import HttpRequest, HttpResponse

from cache_expiration.classifiers import get_classifier
from cache_expiration.config import CacheExpirationConfig
from cache_expiration.middleware import CacheExpirationMiddleware


class Command(BaseCommand):
    help = "Show the cache expiration settings and the headers that would be set for the given paths."

    def add_arguments(self, parser):
        parser.add_argument("paths", nargs="*", help="Request paths to classify, e.g. /static/app.3f2a.js")
        parser.add_argument(
            "--method",
            type=str,
            default="GET",
            help="HTTP method used for the simulated requests.",
        )

    def handle(self, *args, **options):
        # Under manage.py, CacheExpirationAppConfig.ready() already rejects bad settings during
        # django.setup(); this only covers call_command() with settings changed after startup.
        try:
            config = CacheExpirationConfig.from_settings()
            classifier = get_classifier()
        except ImproperlyConfigured as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(f"max-age: {config.max_age}s")
        self.stdout.write(f"Cache-Control: {config.cache_control}")
        self.stdout.write(f"classifier: {type(classifier).__module__}.{type(classifier).__qualname__}")

        middleware = CacheExpirationMiddleware(lambda request: HttpResponse(), classifier=classifier, config=config)
        for path in options["paths"]:
            request = HttpRequest()
            request.method = options["method"].upper()
            request.path = request.path_info = path
            response = middleware(request)
            if response.has_header("Cache-Control"):
                self.stdout.write(self.style.SUCCESS(f"{path}: aggregated"))
                self.stdout.write(f"  Expires: {response['Expires']}")
                self.stdout.write(f"  Cache-Control: {response['Cache-Control']}")
            else:
                self.stdout.write(self.style.WARNING(f"{path}: not cached"))
