"""Pytest configuration for devdeploy tests."""

import logging

import pytest


@pytest.fixture(autouse=True)
def _quiet_devdeploy_logger():
    """Keep tests from inheriting a file handler installed by setup_logging."""
    logger = logging.getLogger("devdeploy")
    handlers = list(logger.handlers)
    logger.handlers.clear()
    logger.propagate = True
    yield
    logger.handlers[:] = handlers


def pytest_collection_modifyitems(config, items):
    """Set per-marker timeouts: unit=1s, integration=5s."""
    for item in items:
        if "unit" in item.keywords:
            item.add_marker(pytest.mark.timeout(1))
        elif "integration" in item.keywords:
            item.add_marker(pytest.mark.timeout(5))
