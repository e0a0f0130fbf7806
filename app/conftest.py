"""
Project-wide pytest fixtures and test categorization.

App-specific fixtures are defined in each app's tests/conftest.py.
"""

import pytest


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full refund journeys)
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_validators.py, test_calculator.py, test_adapters.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_refund_service.py",
        "test_compensation.py",
        "test_recorder.py",
        "test_concurrency.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_validators.py",
        "test_calculator.py",
        "test_adapters.py",
        "test_stripe_adapter.py",
        "test_paypal_adapter.py",
        "test_locks.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


class FakeRedis:
    """
    In-memory stand-in for the handful of Redis commands the refund lock uses.

    Supports SET NX EX and the two ownership-checked Lua scripts (release
    and extend) by comparing the stored token.
    """

    def __init__(self):
        self.store = {}

    def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    def get(self, key):
        return self.store.get(key)

    def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0

    def eval(self, script, numkeys, key, token, *args):
        if self.store.get(key) != token:
            return 0
        if '"del"' in script:
            del self.store[key]
        return 1


@pytest.fixture(autouse=True)
def fake_redis(mocker):
    """Route refund locks to an in-memory Redis for every test."""
    client = FakeRedis()
    mocker.patch("refunds.locks.get_redis_connection", return_value=client)
    return client


@pytest.fixture(autouse=True)
def clear_cache():
    """Start each test with an empty cache (PayPal tokens live there)."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def reset_provider_adapters():
    """Drop adapters injected by a test so the next one gets the defaults."""
    yield
    from refunds.adapters import registry

    registry._adapters.clear()
