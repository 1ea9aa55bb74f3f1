"""
Fakes standing in for clocks, pipeline handles, factories and backends.
"""

import asyncio
from typing import Any, Dict, List, Optional


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHandle:
    """Stand-in pipeline handle that records release."""

    def __init__(self, name: str = "handle"):
        self.name = name
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def __repr__(self) -> str:
        return f"FakeHandle({self.name!r})"


class StubFactory:
    """Counts invocations; optionally blocks on a gate or raises."""

    def __init__(self,
                 handle: Any = None,
                 error: Optional[BaseException] = None,
                 gate: Optional[asyncio.Event] = None):
        self.handle = handle if handle is not None else FakeHandle()
        self.error = error
        self.gate = gate
        self.calls = 0

    async def __call__(self) -> Any:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.handle


class FakeBackend:
    """Callable imitating a transformers pipeline."""

    def __init__(self, output: Any = None, error: Optional[Exception] = None):
        self.output = output
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, text: str, **kwargs: Any) -> Any:
        self.calls.append({'text': text, **kwargs})
        if self.error is not None:
            raise self.error
        return self.output
