"""Django settings for the storefront checkout web app.

Every deploy-time value is read from the environment with a local
default, so the app runs out of the box against sqlite and the in-process
stub adapters.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-change-me")
DEBUG = env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "rest_framework",
    "apps.checkout.apps.CheckoutConfig",
]

MIDDLEWARE = [
    "gateway.middleware.RequestIdMiddleware",
    "gateway.middleware.ApiSizeLimitMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

if os.getenv("DATABASE_URL", "").startswith("postgres"):
    from urllib.parse import urlparse

    _db = urlparse(os.environ["DATABASE_URL"])
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": _db.path.lstrip("/"),
            "USER": _db.username or "",
            "PASSWORD": _db.password or "",
            "HOST": _db.hostname or "",
            "PORT": str(_db.port or 5432),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.getenv("SQLITE_PATH", str(BASE_DIR / "db.sqlite3")),
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}}

SESSION_ENGINE = "django.contrib.sessions.backends.db"

USE_TZ = True
TIME_ZONE = "UTC"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": ["rest_framework.authentication.SessionAuthentication"],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "DEFAULT_THROTTLE_RATES": {
        "cart": os.getenv("THROTTLE_CART", "120/min"),
        "checkout_view": os.getenv("THROTTLE_CHECKOUT_VIEW", "60/min"),
        "checkout_submit": os.getenv("THROTTLE_CHECKOUT_SUBMIT", "10/min"),
        "orders_list": os.getenv("THROTTLE_ORDERS_LIST", "60/min"),
    },
}

# ---- Checkout ----
USE_HTTP_ADAPTERS = env_bool("USE_HTTP_ADAPTERS", False)
ORDER_STORE_BASE_URL = os.getenv("ORDER_STORE_BASE_URL", "http://orderstore:9001")
NOTIFICATIONS_BASE_URL = os.getenv("NOTIFICATIONS_BASE_URL", "http://notifications:9002")
BACKEND_API_KEY = os.getenv("BACKEND_API_KEY", "")
HTTP_TIMEOUT_SECS = float(os.getenv("HTTP_TIMEOUT_SECS", "3.0"))

CHECKOUT_FALLBACK_KEY = os.getenv("CHECKOUT_FALLBACK_KEY", "orders")
CHECKOUT_CART_URL = os.getenv("CHECKOUT_CART_URL", "/api/cart/")
CHECKOUT_LOGIN_URL = os.getenv("CHECKOUT_LOGIN_URL", "/api/auth/login/")
CHECKOUT_CONFIRMATION_URL = os.getenv("CHECKOUT_CONFIRMATION_URL", "/order-confirmation")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_id": {"()": "gateway.logging_filters.RequestIdFilter"},
    },
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(request_id)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "filters": ["request_id"],
        },
    },
    "root": {
        "handlers": ["console"],
        "level": os.getenv("LOG_LEVEL", "INFO"),
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": os.getenv("DJANGO_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
