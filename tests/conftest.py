from collections.abc import Iterator

import pytest

from telepoll import bot as bot_module
from tests.telegram_fakes import FakeUpdateSource


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def _release_interface_slot() -> Iterator[None]:
    yield
    bot_module._release_interface_slot()


@pytest.fixture
def fake_source() -> FakeUpdateSource:
    return FakeUpdateSource()
