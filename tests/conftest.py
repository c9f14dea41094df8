# tests/conftest.py

"""Shared pytest fixtures for all price engine tests."""

from collections.abc import Generator
from unittest.mock import AsyncMock, patch

import pytest


@pytest.fixture(autouse=True)
def mock_sleep() -> Generator[None, None, None]:
    """Patch the retry backoff sleep so retry loops run instantly."""
    with patch("src.sources.retry.asyncio.sleep", new_callable=AsyncMock):
        yield
