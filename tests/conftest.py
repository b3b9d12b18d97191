import pytest
import structlog


@pytest.fixture
def reset_logging():
    yield
    structlog.reset_defaults()
