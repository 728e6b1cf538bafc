from __future__ import annotations

import pytest
from django.core.cache import cache
from django.test import Client
from stubs import StubAdvisor


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client() -> Client:
    return Client()


@pytest.fixture
def advisor() -> StubAdvisor:
    return StubAdvisor()
