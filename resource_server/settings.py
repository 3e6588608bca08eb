"""Django settings for the resource_server project."""

from pathlib import Path
import os

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Security / environment toggles
SECRET_KEY = os.getenv("SECRET_KEY", "django-insecure-change-this-to-a-unique-key")
DEBUG = os.getenv("DEBUG", "False").lower() in {"1", "true", "yes"}

_default_hosts = "127.0.0.1,localhost,testserver"
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", _default_hosts).split(",") if h.strip()]

# Application definition

INSTALLED_APPS = [
    'django.contrib.staticfiles',
    'cache_expiration.apps.CacheExpirationAppConfig',
]

# CacheExpirationMiddleware wraps WhiteNoise so it can stamp the static responses WhiteNoise serves.
MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'cache_expiration.middleware.CacheExpirationMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'resource_server.urls'

WSGI_APPLICATION = 'resource_server.wsgi.application'
ASGI_APPLICATION = 'resource_server.asgi.application'

DATABASES = {}

# Internationalization
# https://docs.djangoproject.com/en/5.1/topics/i18n/

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True

# --- Deployment: static ---
# https://docs.djangoproject.com/en/5.1/howto/static-files/
STATIC_URL = os.getenv("STATIC_URL", "/static/")
STATIC_ROOT = BASE_DIR / 'staticfiles'
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedStaticFilesStorage"},
}

# --- Cache expiration for aggregated (versioned) resources ---
# Seconds; defaults to one year. Validated (and converted) by CacheExpirationConfig.from_settings.
CACHE_MAX_AGE = os.getenv("CACHE_MAX_AGE", "31536000")
# Legacy knob kept for older deployments; headers are computed once and never regenerated.
CACHE_REGENERATE_HEADERS_INTERVAL = int(os.getenv("CACHE_REGENERATE_HEADERS_INTERVAL", "1000"))
CACHE_EXPIRATION_CLASSIFIER = os.getenv(
    "CACHE_EXPIRATION_CLASSIFIER", "cache_expiration.classifiers.StaticAssetClassifier"
)
CACHE_EXPIRATION_AGGREGATED_PREFIXES = [
    p.strip() for p in os.getenv("CACHE_EXPIRATION_AGGREGATED_PREFIXES", "").split(",") if p.strip()
]
CACHE_EXPIRATION_AGGREGATION_ENABLED = os.getenv(
    "CACHE_EXPIRATION_AGGREGATION_ENABLED", "False" if DEBUG else "True"
).lower() in {"1", "true", "yes"}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "[{levelname}] {name}: {message}", "style": "{"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "cache_expiration": {
            "handlers": ["console"],
            "level": os.getenv("LOG_LEVEL", "INFO").upper(),
        },
    },
}
