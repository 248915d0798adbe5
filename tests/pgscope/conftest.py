import logging

import pytest

from pgscope.settings import reset_settings


# ===========================================================================================
# HOOKS
# ===========================================================================================

@pytest.fixture(autouse=True, scope="function")
def around_function():
    """Every test starts from freshly loaded settings, so env overrides in one test do not leak."""
    reset_settings()
    yield
    reset_settings()


# ===========================================================================================
# FIXTURES
# ===========================================================================================

@pytest.fixture
def scope_logs(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    """Capture DEBUG output of the pgscope loggers."""
    caplog.set_level(logging.DEBUG, logger="pgscope")
    return caplog
