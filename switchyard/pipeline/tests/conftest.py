import os
from typing import List

import pytest

# Config is initialized at import time; keep it independent from the host env.
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOG_QUEUE", "0")

from switchyard.pipeline.models.context import Context  # noqa: E402


class Recorder:
    """Builds units that record their invocation order."""

    def __init__(self) -> None:
        self.calls: List[str] = []

    def unit(self, name: str, *, status: int = None, body=None):
        async def recording_unit(context: Context) -> Context:
            self.calls.append(name)
            if status is not None:
                context.respond(status, body)
            return context

        recording_unit.__qualname__ = f"recording_unit[{name}]"
        return recording_unit


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_context():
    def _make(method: str = "GET", path: str = "/", **kwargs) -> Context:
        return Context(method, path, **kwargs)

    return _make
