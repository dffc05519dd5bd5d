import pytest
from backends import FakeBackend, GatedBackend


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def gated() -> GatedBackend:
    return GatedBackend()
