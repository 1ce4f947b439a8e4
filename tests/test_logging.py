import pytest
import structlog

from asset_verify.core.log_config import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


def test_configure_logging_json():
    configure_logging(level="INFO", json_output=True)
    structlog.get_logger("asset_verify.test").info("Verification completed", status="VERIFIED")

    assert structlog.is_configured()


def test_configure_logging_console():
    configure_logging(level="DEBUG", json_output=False)
    assert structlog.is_configured()
