"""Shared fixtures: a per-test metrics registry and an in-process fake of the modem's web UI."""

from __future__ import annotations

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer
from prometheus_client import CollectorRegistry

from fake_modem import FakeModem
from netgear.metrics import ModemMetrics


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def modem_metrics(registry) -> ModemMetrics:
    return ModemMetrics(registry=registry)


@pytest.fixture
def fake_modem() -> FakeModem:
    return FakeModem()


@pytest_asyncio.fixture
async def modem_url(fake_modem):
    """Base URL of a running FakeModem."""
    async with TestServer(fake_modem.app) as server:
        yield f"http://{server.host}:{server.port}"
