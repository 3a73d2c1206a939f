import logging
from typing import Any, Dict, List

from bench.errors import InvocationError
from bench.question import BenchmarkResult, Question, SmokeMetrics, TestType
from bench.scorer import SmokeChecker

from .base import TestExecutor


log = logging.getLogger(__name__)

DEFAULT_TIME_LIMIT_MS = 10000
SMOKE_PARAMS = {'temperature': 0.1, 'max_tokens': 150}


def smoke_score(metrics: SmokeMetrics) -> float:
    score = 0.0
    if metrics.basic_functionality:
        score += 3
    if metrics.response_completeness:
        score += 3
    if metrics.no_errors:
        score += 2
    if metrics.within_time_limit:
        score += 2
    return score


class SmokeExecutor(TestExecutor):
    test_type = TestType.SMOKE
    default_scorer = SmokeChecker

    def __init__(self, *args, time_limit_ms: int = DEFAULT_TIME_LIMIT_MS, **kwargs):
        super().__init__(*args, **kwargs)
        self.time_limit_ms = time_limit_ms

    async def execute(self, question: Question, models: List[str],
                      config: Dict[str, Any]) -> List[BenchmarkResult]:
        settings = self.section(config)
        time_limit = settings.get('time_limit') or self.time_limit_ms
        basic_checks = settings.get('basic_checks') or []
        results = []

        for model in models:
            start = self.providers.monotonic()
            try:
                response = await self.call_model_with_timeout(model, question.text, time_limit, dict(SMOKE_PARAMS))
            except InvocationError as e:
                elapsed = self.providers.elapsed_ms(start)
                log.warning("smoke test failed for %s: %s", model, e)
                metrics = SmokeMetrics(
                    basic_functionality=False,
                    response_completeness=False,
                    no_errors=False,
                    within_time_limit=elapsed <= time_limit,
                )
                results.append(self.create_result(
                    question, self.create_failure_response(model, e, elapsed), metrics, 0,
                    notes=f"Smoke test failed: {e}",
                ))
                continue

            elapsed = self.providers.elapsed_ms(start)
            metrics = self.scorer.evaluate(question, response.response, elapsed, time_limit, basic_checks)
            results.append(self.create_result(
                question, response, metrics, smoke_score(metrics),
                notes=f"Quick smoke test ({elapsed}ms)",
            ))

        return results

    def validate_config(self, config: Dict[str, Any]) -> bool:
        settings = self.section(config)
        time_limit = settings.get('time_limit', DEFAULT_TIME_LIMIT_MS)
        checks = settings.get('basic_checks', [])
        return isinstance(time_limit, (int, float)) and time_limit > 0 and isinstance(checks, list)

    def get_estimated_duration(self, question_count: int, model_count: int) -> int:
        return question_count * model_count * (self.time_limit_ms + 2000)
