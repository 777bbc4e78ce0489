import pytest

from locanara.domain.backend.generation_backend import reset_default_backend
from locanara.infrastructure.observability.logging import metrics
from tests.fakes import FakeBackend


@pytest.fixture(autouse=True)
def _isolate_globals():
    reset_default_backend()
    metrics.reset()
    yield
    reset_default_backend()
    metrics.reset()


@pytest.fixture
def fake_backend():
    return FakeBackend(default="ok")
