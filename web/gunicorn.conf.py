"""Gunicorn settings for the checkout web app (``gunicorn -c gunicorn.conf.py config.wsgi``)."""

import os

wsgi_app = "config.wsgi:application"
bind = os.getenv("GUNI_BIND", "0.0.0.0:8000")

# Checkout requests block on the order store, so threads matter more than processes.
workers = int(os.getenv("GUNI_WORKERS", str(min(max(2, (os.cpu_count() or 1) * 2), 8))))
worker_class = "gthread"
threads = int(os.getenv("GTHREADS", "4"))

# Backend calls are bounded by HTTP_TIMEOUT_SECS, twice per checkout plus the confirmation.
timeout = int(os.getenv("GUNI_TIMEOUT", "30"))
graceful_timeout = int(os.getenv("GUNI_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNI_KEEPALIVE", "5"))

preload_app = True
max_requests = int(os.getenv("GUNI_MAX_REQUESTS", "2000"))
max_requests_jitter = int(os.getenv("GUNI_MAX_REQUESTS_JITTER", "200"))

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNI_LOGLEVEL", "info")
logconfig_dict = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "json"},
    },
    "loggers": {
        "gunicorn.error": {"handlers": ["console"], "level": loglevel.upper(), "propagate": False},
        "gunicorn.access": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
}


def worker_exit(server, worker):
    # Let queued order confirmations finish before the worker goes away.
    from apps.checkout.notifications import wait_for_background

    if not wait_for_background(timeout=graceful_timeout):
        server.log.warning("worker %s exited with order confirmations still queued", worker.pid)
