import pytest
from django.core.cache import cache


@pytest.fixture(autouse=True)
def use_stubs_for_tests(settings):
    from apps.checkout import notifications, providers

    settings.USE_HTTP_ADAPTERS = False
    providers.order_store_stub.reset()
    providers.notification_stub.reset()
    # Throttle counters and checkout locks live in the cache.
    cache.clear()
    yield
    # Confirmations queued by one test must not land in the next one's stub.
    notifications.wait_for_background(timeout=5)
    cache.clear()
