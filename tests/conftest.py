import logging

import pytest

from servicekit import reset_config


@pytest.fixture(autouse=True)
def _reset_servicekit_config():
    reset_config()
    yield
    reset_config()


@pytest.fixture
def quiet_services(caplog):
    """Capture service logs at WARNING so step chatter stays out of test output."""

    caplog.set_level(logging.WARNING)
    return caplog
