"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import logging

import pytest


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(autouse=True)
def engine_settings(settings):
    """
    Pin COSTING_ENGINE to the documented defaults for every test.

    Environment overrides on a developer machine must not change the
    expected figures in assertions.
    """
    settings.COSTING_ENGINE = {
        "EFFECTIVE_HOURLY_LABOR_RATE": "15.00",
        "REGEX_TIMEOUT_MS": 50,
        "PRICE_STALENESS_DAYS": 30,
    }
    yield settings.COSTING_ENGINE


# ============================================================================
# LOGGING FIXTURES
# ============================================================================

@pytest.fixture
def engine_warnings(caplog):
    """
    Capture WARNING records from the engine loggers.

    Usage:
        def test_skips_bad_rule(engine_warnings):
            ...
            assert "invalid pattern" in engine_warnings.text
    """
    caplog.set_level(logging.WARNING)
    return caplog


# ============================================================================
# IMPORT ALL FIXTURES FROM core_backend/tests/fixtures.py
# ============================================================================
from core_backend.tests.fixtures import *
