"""Pytest configuration and shared fixtures."""

import pytest


@pytest.fixture(autouse=True)
def cleanup_connections():
    """Close pooled store connections after each test to prevent file descriptor leaks."""
    yield
    from mdmengine.infrastructure.store_pool import StorePool
    StorePool.close_all()
