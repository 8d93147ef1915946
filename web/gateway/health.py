"""Liveness/readiness endpoint for the web app."""

from django.conf import settings
from django.db import DatabaseError, connection
from django.http import JsonResponse


def health_view(_request):
    """Report database reachability and which backend adapters are wired.

    The database holds sessions and the local order fallback, so the app is
    unhealthy without it even when the remote order store is up.
    """
    db_ok = True
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1")
    except DatabaseError:
        db_ok = False

    return JsonResponse(
        {
            "ok": db_ok,
            "components": {"db": {"ok": db_ok}},
            "adapters": "http" if getattr(settings, "USE_HTTP_ADAPTERS", False) else "stub",
        },
        status=200 if db_ok else 503,
    )
