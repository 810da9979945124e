from __future__ import annotations

import asyncio
from typing import Any

import pytest

from topic_monitor.classifiers.corpus import KeywordCorpus
from topic_monitor.classifiers.remote import RemoteVerdict
from topic_monitor.core.engine import MonitoringEngine
from topic_monitor.core.errors import RemoteClassifierError
from topic_monitor.core.event_bus import EventBus
from topic_monitor.core.settings import Settings

TOPIC = "Quadratic Equations"
SUBJECT = "Mathematics"

# strong segments carry two or more curriculum keywords
STRONG = [
    "Today we study the quadratic formula",
    "The discriminant tells us the roots",
    "For example, x squared minus 4 equals zero",
]
# weak segments are on-topic through a single phrase keyword
WEAK = [
    "Next we practise completing the square carefully",
    "Remember the zero product rule today",
    "Now locate the axis of symmetry on paper",
]


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class FakeRemote:
    """Remote classifier double; optionally holds every call until `gate` is set."""

    def __init__(
        self,
        verdict: RemoteVerdict | None = None,
        *,
        error: Exception | None = None,
        gated: bool = False,
    ) -> None:
        self.verdict = verdict or RemoteVerdict(is_on_topic=False, confidence=0.9, reason="small talk")
        self.error = error
        self.gate = asyncio.Event()
        if not gated:
            self.gate.set()
        self.calls: list[str] = []
        self.batches: list[list[str]] = []

    async def classify(self, text: str, topic: str, subject: str) -> RemoteVerdict:
        self.calls.append(text)
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.verdict

    async def classify_batch(self, texts: list[str], topic: str, subject: str) -> list[RemoteVerdict]:
        self.batches.append(list(texts))
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return [self.verdict for _ in texts]


class _Pipeline:
    def __init__(self, redis: "InMemoryRedis") -> None:
        self._redis = redis
        self._ops: list[tuple[str, tuple[Any, ...]]] = []

    def __getattr__(self, name: str):
        def queue(*args: Any) -> "_Pipeline":
            self._ops.append((name, args))
            return self

        return queue

    async def execute(self) -> list[Any]:
        return [await getattr(self._redis, name)(*args) for name, args in self._ops]


class InMemoryRedis:
    """Just enough of redis.asyncio.Redis for the history store."""

    def __init__(self) -> None:
        self.strings: dict[str, bytes] = {}
        self.lists: dict[str, list[bytes]] = {}
        self.sets: dict[str, set[bytes]] = {}
        self.closed = False

    @staticmethod
    def _b(value: Any) -> bytes:
        return value if isinstance(value, bytes) else str(value).encode("utf-8")

    async def get(self, key: str) -> bytes | None:
        return self.strings.get(key)

    async def set(self, key: str, value: Any) -> bool:
        self.strings[key] = self._b(value)
        return True

    async def lpush(self, key: str, *values: Any) -> int:
        items = self.lists.setdefault(key, [])
        for v in values:
            items.insert(0, self._b(v))
        return len(items)

    async def ltrim(self, key: str, start: int, end: int) -> bool:
        items = self.lists.get(key, [])
        self.lists[key] = items[start : None if end == -1 else end + 1]
        return True

    async def lrange(self, key: str, start: int, end: int) -> list[bytes]:
        items = self.lists.get(key, [])
        return list(items[start : None if end == -1 else end + 1])

    async def sadd(self, key: str, *values: Any) -> int:
        s = self.sets.setdefault(key, set())
        before = len(s)
        s.update(self._b(v) for v in values)
        return len(s) - before

    async def smembers(self, key: str) -> set[bytes]:
        return set(self.sets.get(key, set()))

    def pipeline(self) -> _Pipeline:
        return _Pipeline(self)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        remote_classifier_backend="disabled",
        analysis_interval_s=0,
        simulation_interval_s=0,
        interim_debounce_s=0,
        remote_batch_interval_s=0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def corpus() -> KeywordCorpus:
    return KeywordCorpus()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def make_engine(test_settings, clock, corpus, bus):
    def factory(remote=None, settings: Settings | None = None, session_id: str = "s-1") -> MonitoringEngine:
        return MonitoringEngine(
            session_id,
            corpus=corpus,
            bus=bus,
            settings=settings or test_settings,
            remote=remote,
            clock=clock,
        )

    return factory


@pytest.fixture
def failing_remote() -> FakeRemote:
    return FakeRemote(error=RemoteClassifierError("upstream 503"))
