import pytest

from tests.utils import FakeClock


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()
