import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from bench.errors import InvocationError
from bench.question import ApiIoMetrics, BenchmarkResult, Question, TestType

from .base import TestExecutor


log = logging.getLogger(__name__)

DEFAULT_CONCURRENT_REQUESTS = 5
DEFAULT_LOAD_DURATION_MS = 30000
MAX_STRESS_CONCURRENCY = 10
LOAD_TIMEOUT_MS = 10000
STRESS_TIMEOUT_MS = 8000
STRESS_WINDOW = 20
STRESS_ABORT_ERROR_RATE = 0.5


@dataclass
class RequestOutcome:
    success: bool
    response_time_ms: int
    error: str = ''


@dataclass
class PhaseResult:
    outcomes: List[RequestOutcome] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def successes(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failures(self) -> int:
        return self.total - self.successes

    @property
    def response_times(self) -> List[int]:
        return [o.response_time_ms for o in self.outcomes]

    def recent_error_rate(self, window: int = STRESS_WINDOW) -> float:
        recent = self.outcomes[-window:]
        if not recent:
            return 0.0
        return sum(1 for o in recent if not o.success) / len(recent)


def aggregate_performance(load: PhaseResult, stress: PhaseResult) -> ApiIoMetrics:
    """Combine both phases. Throughput counts load-phase successes only."""
    times = load.response_times + stress.response_times
    total = load.total + stress.total
    failed = load.failures + stress.failures
    successful = load.successes + stress.successes
    return ApiIoMetrics(
        average_response_time=sum(times) / len(times) if times else 0.0,
        max_response_time=max(times) if times else 0.0,
        min_response_time=min(times) if times else 0.0,
        error_rate=failed / total * 100 if total else 0.0,
        throughput=load.successes / load.duration_ms * 1000 if load.duration_ms > 0 else 0.0,
        success_rate=successful / total * 100 if total else 0.0,
    )


def api_io_score(metrics: ApiIoMetrics) -> float:
    score = 10

    if metrics.average_response_time > 5000:
        score -= 3
    elif metrics.average_response_time > 3000:
        score -= 2
    elif metrics.average_response_time > 1000:
        score -= 1

    if metrics.error_rate > 20:
        score -= 4
    elif metrics.error_rate > 10:
        score -= 3
    elif metrics.error_rate > 5:
        score -= 2
    elif metrics.error_rate > 1:
        score -= 1

    if metrics.throughput < 0.1:
        score -= 2
    elif metrics.throughput < 0.5:
        score -= 1

    if metrics.success_rate > 95:
        score += 1
    if metrics.average_response_time < 500:
        score += 1

    return max(0, min(10, score))


class ApiIoExecutor(TestExecutor):
    """Load phase at fixed concurrency, then a stress ramp from 1 to 10."""

    test_type = TestType.API_IO
    default_estimate_ms = 80000

    def __init__(self, *args, batch_pause_s: float = 1.0, stress_pause_s: float = 0.5,
                 stress_level_ms: int = 5000, max_concurrency: int = MAX_STRESS_CONCURRENCY, **kwargs):
        super().__init__(*args, **kwargs)
        self.batch_pause_s = batch_pause_s
        self.stress_pause_s = stress_pause_s
        self.stress_level_ms = stress_level_ms
        self.max_concurrency = max_concurrency

    async def execute(self, question: Question, models: List[str],
                      config: Dict[str, Any]) -> List[BenchmarkResult]:
        settings = self.section(config)
        concurrency = settings.get('concurrent_requests') or DEFAULT_CONCURRENT_REQUESTS
        duration = settings.get('load_test_duration') or DEFAULT_LOAD_DURATION_MS
        results = []

        for model in models:
            start = self.providers.monotonic()
            try:
                log.info("api/io test for %s with %d concurrent requests", model, concurrency)
                load = await self.run_load_test(model, question.text, concurrency, duration)
                stress = await self.run_stress_test(model, question.text)
                metrics = aggregate_performance(load, stress)
                response = await self.call_model(model, question.text)
            except InvocationError as e:
                log.warning("api/io test failed for %s: %s", model, e)
                metrics = ApiIoMetrics(
                    average_response_time=0,
                    max_response_time=0,
                    min_response_time=0,
                    error_rate=100,
                    throughput=0,
                    success_rate=0,
                )
                failure = self.create_failure_response(model, e, self.providers.elapsed_ms(start))
                results.append(self.create_result(question, failure, metrics, 0, notes=f"Test failed: {e}"))
                continue

            results.append(self.create_result(
                question, response, metrics, api_io_score(metrics),
                notes=f"API performance measured with {concurrency} concurrent requests",
            ))
        return results

    async def run_batch(self, model: str, prompt: str, size: int, timeout_ms: int) -> List[RequestOutcome]:
        semaphore = asyncio.Semaphore(min(size, self.max_concurrency))

        async def one() -> RequestOutcome:
            async with semaphore:
                started = self.providers.monotonic()
                try:
                    await self.call_model_with_timeout(model, prompt, timeout_ms)
                except InvocationError as e:
                    return RequestOutcome(False, self.providers.elapsed_ms(started), str(e))
                return RequestOutcome(True, self.providers.elapsed_ms(started))

        return list(await asyncio.gather(*(one() for _ in range(size))))

    async def run_load_test(self, model: str, prompt: str, concurrency: int, duration_ms: int) -> PhaseResult:
        phase = PhaseResult()
        start = self.providers.monotonic()
        while self.providers.elapsed_ms(start) < duration_ms:
            phase.outcomes.extend(await self.run_batch(model, prompt, concurrency, LOAD_TIMEOUT_MS))
            await self.pause(self.batch_pause_s)
        phase.duration_ms = self.providers.elapsed_ms(start)
        return phase

    async def run_stress_test(self, model: str, prompt: str) -> PhaseResult:
        phase = PhaseResult()
        start = self.providers.monotonic()
        for level in range(1, self.max_concurrency + 1):
            log.debug("stress level %d for %s", level, model)
            level_start = self.providers.monotonic()
            while self.providers.elapsed_ms(level_start) < self.stress_level_ms:
                phase.outcomes.extend(await self.run_batch(model, prompt, level, STRESS_TIMEOUT_MS))
                if phase.recent_error_rate() > STRESS_ABORT_ERROR_RATE:
                    log.info("stress ramp for %s stopped at concurrency %d: error rate too high", model, level)
                    phase.duration_ms = self.providers.elapsed_ms(start)
                    return phase
                await self.pause(self.stress_pause_s)
        phase.duration_ms = self.providers.elapsed_ms(start)
        return phase

    def validate_config(self, config: Dict[str, Any]) -> bool:
        settings = (config or {}).get('api_io')
        if not isinstance(settings, dict):
            return False
        concurrency = settings.get('concurrent_requests')
        duration = settings.get('load_test_duration')
        return (isinstance(concurrency, int) and concurrency > 0
                and isinstance(duration, (int, float)) and duration > 0)
