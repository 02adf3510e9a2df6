from __future__ import annotations

import pytest


@pytest.fixture
def anyio_backend() -> str:
    # The relay only runs on asyncio
    return "asyncio"
