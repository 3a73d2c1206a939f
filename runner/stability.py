import logging
import math
from typing import Any, Dict, List

from bench.errors import InvocationError
from bench.question import BenchmarkResult, ModelResponse, Question, StabilityMetrics, TestType
from bench.similarity import pairwise_mean_similarity, text_similarity

from .base import TestExecutor


log = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 5
DEFAULT_THRESHOLD = 0.7


def consistency(texts: List[str], threshold: float) -> float:
    if len(texts) < 2:
        return 10.0
    return min(10.0, pairwise_mean_similarity(texts) / threshold * 10)


def variability(texts: List[str]) -> float:
    """Coefficient of variation of response lengths, in percent."""
    if len(texts) < 2:
        return 0.0
    lengths = [len(t) for t in texts]
    mean = sum(lengths) / len(lengths)
    if mean <= 0:
        return 0.0
    variance = sum((n - mean) ** 2 for n in lengths) / len(lengths)
    return math.sqrt(variance) / mean * 100


def convergence_rate(texts: List[str], threshold: float) -> float:
    if len(texts) < 3:
        return 100.0
    groups: List[List[str]] = []
    for text in texts:
        for group in groups:
            if text_similarity(text, group[0]) >= threshold:
                group.append(text)
                break
        else:
            groups.append([text])
    return max(len(g) for g in groups) / len(texts) * 100


def count_outliers(times: List[float]) -> int:
    if len(times) < 3:
        return 0
    ordered = sorted(times)
    q1 = ordered[int(len(ordered) * 0.25)]
    q3 = ordered[int(len(ordered) * 0.75)]
    iqr = q3 - q1
    low, high = q1 - 1.5 * iqr, q3 + 1.5 * iqr
    return sum(1 for t in times if t < low or t > high)


def stability_score(metrics: StabilityMetrics) -> float:
    score = (min(10.0, metrics.consistency) * 0.4
             + metrics.convergence_rate / 10 * 0.3
             + max(0.0, 10 - metrics.variability / 10) * 0.2
             + max(0, 10 - metrics.outlier_count) * 0.1)
    return round(score, 1)


class StabilityExecutor(TestExecutor):
    test_type = TestType.STABILITY
    default_call_delay_s = 1.0

    async def execute(self, question: Question, models: List[str],
                      config: Dict[str, Any]) -> List[BenchmarkResult]:
        settings = self.section(config)
        iterations = settings.get('iteration_count') or DEFAULT_ITERATIONS
        threshold = settings.get('consistency_threshold') or DEFAULT_THRESHOLD
        results = []

        for model in models:
            responses = await self.run_iterations(model, question, iterations)
            if not responses:
                log.warning("stability test skipped for %s: no successful responses", model)
                continue

            texts = [r.response for r in responses]
            metrics = StabilityMetrics(
                consistency=consistency(texts, threshold),
                variability=variability(texts),
                convergence_rate=convergence_rate(texts, threshold),
                outlier_count=count_outliers([r.response_time_ms for r in responses]),
            )
            results.append(self.create_result(
                question, responses[0], metrics, stability_score(metrics),
                notes=f"Stability measured over {iterations} iterations",
            ))
        return results

    async def run_iterations(self, model: str, question: Question, iterations: int) -> List[ModelResponse]:
        responses = []
        rng = self.providers.rng
        for i in range(iterations):
            params = {
                'temperature': 0.7 + (rng.random() - 0.5) * 0.2,
                'seed': rng.randint(0, 999999),
            }
            try:
                responses.append(await self.call_model(model, question.text, params))
            except InvocationError as e:
                log.debug("iteration %d failed for %s: %s", i + 1, model, e)
                continue
            await self.pause()
        return responses

    def validate_config(self, config: Dict[str, Any]) -> bool:
        settings = (config or {}).get('stability')
        if not isinstance(settings, dict):
            return False
        count = settings.get('iteration_count')
        threshold = settings.get('consistency_threshold')
        return (isinstance(count, int) and count > 1
                and isinstance(threshold, (int, float)) and 0 < threshold <= 1)

    def get_estimated_duration(self, question_count: int, model_count: int) -> int:
        return question_count * model_count * DEFAULT_ITERATIONS * 35000

    def get_required_models(self) -> List[str]:
        return ['llama2:7b']
