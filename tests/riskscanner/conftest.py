import pytest

from fakes import FakeLogger


@pytest.fixture
def logger():
    return FakeLogger()
