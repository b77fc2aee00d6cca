import pytest

from fakes import STOCKHOLM, RecordingSleep


@pytest.fixture
def origin():
    return STOCKHOLM


@pytest.fixture
def sleeper():
    return RecordingSleep()
