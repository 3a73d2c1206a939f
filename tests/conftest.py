"""Shared fixtures: a scripted model invoker and pinned id/clock providers."""
import asyncio
import itertools
import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from bench.config import with_defaults
from bench.errors import InvocationError
from bench.providers import Providers
from bench.question import (
    BenchmarkSuite,
    DifficultyLevel,
    ModelResponse,
    Question,
    QuestionCategory,
    TestType,
)
from models.invoker import ModelInvoker


FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self):
        self.seconds = 0.0

    def monotonic(self) -> float:
        return self.seconds

    def advance_ms(self, ms: float):
        self.seconds += ms / 1000


def make_providers(clock: Optional[FakeClock] = None, seed: int = 42) -> Providers:
    counter = itertools.count(1)
    clock = clock or FakeClock()
    return Providers(
        new_id=lambda: f"id-{next(counter)}",
        now=lambda: FIXED_NOW,
        monotonic=clock.monotonic,
        rng=random.Random(seed),
    )


class FakeInvoker(ModelInvoker):
    """Answers from a per-model script.

    A script entry is a string (returned every time), an exception (raised
    every time), a callable ``(prompt, params) -> str`` or a list consumed one
    item per call (the last item repeats).
    """

    def __init__(self, script: Optional[Dict[str, Any]] = None, default: Any = "A default answer.",
                 clock: Optional[FakeClock] = None, latency_ms: int = 0):
        self.script = dict(script or {})
        self.default = default
        self.clock = clock
        self.latency_ms = latency_ms
        self.calls: List[Dict[str, Any]] = []

    def _next(self, model: str):
        entry = self.script.get(model, self.default)
        if isinstance(entry, list):
            return entry.pop(0) if len(entry) > 1 else entry[0]
        return entry

    async def invoke(self, model: str, prompt: str,
                     params: Optional[Dict[str, Any]] = None) -> ModelResponse:
        self.calls.append({'model': model, 'prompt': prompt, 'params': dict(params or {})})
        if self.clock is not None:
            self.clock.advance_ms(self.latency_ms)

        entry = self._next(model)
        if isinstance(entry, Exception):
            raise entry
        text = entry(prompt, params or {}) if callable(entry) else entry
        return ModelResponse(
            id=f"resp-{len(self.calls)}",
            model_name=model,
            response=text,
            response_time_ms=self.latency_ms,
            timestamp=FIXED_NOW,
            temperature=(params or {}).get('temperature'),
        )

    def calls_for(self, model: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c['model'] == model]


class SlowInvoker(FakeInvoker):
    """Sleeps for real before answering, one delay (seconds) per call in order; the last repeats."""

    def __init__(self, delays: List[float], **kwargs):
        super().__init__(**kwargs)
        self.delays = list(delays)

    async def invoke(self, model: str, prompt: str,
                     params: Optional[Dict[str, Any]] = None) -> ModelResponse:
        delay = self.delays.pop(0) if len(self.delays) > 1 else self.delays[0]
        await asyncio.sleep(delay)
        return await super().invoke(model, prompt, params)


def failing(model: str, message: str = "connection refused") -> InvocationError:
    return InvocationError(model, message)


def make_question(**overrides) -> Question:
    values = dict(
        id='q1',
        text='What is the capital of France?',
        category=QuestionCategory.FACTUAL_KNOWLEDGE,
        difficulty=DifficultyLevel.EASY,
        keywords=['Paris', 'France'],
        expected_answer_length=60,
    )
    values.update(overrides)
    return Question(**values)


def make_suite(questions=None, models=None, test_types=None, configuration=None) -> BenchmarkSuite:
    return BenchmarkSuite(
        id='suite-1',
        name='Test suite',
        test_types=list(test_types if test_types is not None else [TestType.SMOKE]),
        questions=list(questions if questions is not None else [make_question()]),
        models=list(models if models is not None else ['model-a', 'model-b']),
        configuration=with_defaults(configuration),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def providers(clock) -> Providers:
    return make_providers(clock)


@pytest.fixture
def question() -> Question:
    return make_question()
