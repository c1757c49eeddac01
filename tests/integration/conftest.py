"""Shared fixtures for integration tests."""

import os

import pytest

# Skip all integration tests unless RUN_DSPACE_NETWORK_TESTS=1
pytestmark = pytest.mark.skipif(
    os.environ.get("RUN_DSPACE_NETWORK_TESTS") != "1",
    reason="Requires network access. Set RUN_DSPACE_NETWORK_TESTS=1 to run",
)

DEFAULT_BASE_URL = "https://demo.dspace.org/server/api"


@pytest.fixture
def base_url():
    return os.environ.get("DSPACE_BASE_URL", DEFAULT_BASE_URL)
