"""Pipeline metrics for the thumbnail engine.

The orchestrator records what happened to each request (`Event`), the
renderer and cache store time their expensive stages (`Stage`). Tests read
the counters to tell cache hits from render work; the batch driver logs
`PipelineSnapshot.describe()` at debug level when it finishes.

Usage:
    from background_picker.thumbnail_engine.metrics import Event, Stage, metrics
    metrics.record(Event.CACHE_HIT)
    with metrics.timed(Stage.RENDER):
        ...
    print(metrics.snapshot().describe())
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock


class Event(str, Enum):
    REQUEST = "request"
    COALESCED = "coalesced"
    CACHE_HIT = "cache_hit"
    GENERATION = "generation"
    DOWNSCALED = "downscaled"
    DECODE_ERROR = "decode_error"
    STORE_FAILURE = "store_failure"


class Stage(str, Enum):
    RENDER = "render"
    STORE = "store"


@dataclass
class StageTiming:
    calls: int = 0
    total: float = 0.0
    slowest: float = 0.0

    def add(self, seconds: float) -> None:
        self.calls += 1
        self.total += seconds
        self.slowest = max(self.slowest, seconds)

    @property
    def mean(self) -> float:
        return self.total / self.calls if self.calls else 0.0


@dataclass(frozen=True)
class PipelineSnapshot:
    events: dict[Event, int] = field(default_factory=dict)
    stages: dict[Stage, StageTiming] = field(default_factory=dict)

    def count(self, event: Event) -> int:
        return self.events.get(event, 0)

    @property
    def hit_rate(self) -> float:
        """Share of distinct lookups answered from the cache."""
        looked_up = self.count(Event.CACHE_HIT) + self.count(Event.GENERATION)
        return self.count(Event.CACHE_HIT) / looked_up if looked_up else 0.0

    def describe(self) -> str:
        parts = [f"{event.value}={self.count(event)}" for event in Event]
        parts.append(f"hit_rate={self.hit_rate:.0%}")
        for stage, timing in self.stages.items():
            parts.append(
                f"{stage.value}: {timing.calls} calls, mean {timing.mean * 1000:.1f} ms, "
                f"max {timing.slowest * 1000:.1f} ms"
            )
        return " ".join(parts)


class PipelineMetrics:
    """Thread-safe event counters and per-stage timings."""

    def __init__(self) -> None:
        self._events: dict[Event, int] = {}
        self._stages: dict[Stage, StageTiming] = {}
        self._lock = Lock()

    def record(self, event: Event, amount: int = 1) -> None:
        with self._lock:
            self._events[event] = self._events.get(event, 0) + int(amount)

    def count(self, event: Event) -> int:
        with self._lock:
            return self._events.get(event, 0)

    @contextmanager
    def timed(self, stage: Stage) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            with self._lock:
                self._stages.setdefault(stage, StageTiming()).add(elapsed)

    def snapshot(self) -> PipelineSnapshot:
        with self._lock:
            return PipelineSnapshot(
                events=dict(self._events),
                stages={s: StageTiming(t.calls, t.total, t.slowest) for s, t in self._stages.items()},
            )

    def reset(self) -> None:
        with self._lock:
            self._events.clear()
            self._stages.clear()


metrics = PipelineMetrics()
