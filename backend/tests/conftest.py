import os

import pytest

os.environ.setdefault("X420_PROVIDER", "mock")

from .helpers import make_provider  # noqa: E402


@pytest.fixture
def provider():
    return make_provider()
