import asyncio
from datetime import date

import pytest

from llm.providers.base import LLMProvider
from storage.event_store import InMemoryEventStore

# 2024-03-13 is a Wednesday
FIXED_TODAY = date(2024, 3, 13)


class FakeProvider(LLMProvider):
    name = "fake"

    def __init__(self, response_text: str = "", error: Exception = None, delay_s: float = 0.0):
        self._response_text = response_text
        self._error = error
        self._delay_s = delay_s
        self.calls = []

    async def generate(self, *, instruction: str, file) -> str:
        self.calls.append((instruction, file))
        if self._delay_s:
            await asyncio.sleep(self._delay_s)
        if self._error is not None:
            raise self._error
        return self._response_text


@pytest.fixture
def fake_provider_factory():
    def _make(response_text: str = "", error: Exception = None, delay_s: float = 0.0):
        return FakeProvider(response_text, error=error, delay_s=delay_s)
    return _make


@pytest.fixture
def memory_store():
    return InMemoryEventStore()


@pytest.fixture
def today():
    return FIXED_TODAY
