"""Logging filter that tags records with the current request id."""

from logging import Filter, LogRecord

from .middleware import REQUEST_ID_CTX


class RequestIdFilter(Filter):
    """Set ``record.request_id`` from ``REQUEST_ID_CTX``.

    Outside a request (management commands, tests) the ContextVar default
    ``"-"`` is used, so the JSON formatter always finds the field.
    """

    def filter(self, record: LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = REQUEST_ID_CTX.get()
        return True
