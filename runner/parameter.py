import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from bench.errors import AggregationError, InvocationError
from bench.question import BenchmarkResult, ModelResponse, ParameterMetrics, Question, TestType
from bench.scorer import SampleQualityScorer
from bench.similarity import pairwise_mean_similarity

from .base import TestExecutor


log = logging.getLogger(__name__)

CALLS_PER_POINT = 3


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class GridPointResult:
    parameters: Dict[str, Any]
    responses: List[ModelResponse]
    quality: float
    consistency: float

    @property
    def objective(self) -> float:
        return self.quality * 0.7 + self.consistency * 0.3


def temperature_values(temperature_range, steps: int) -> List[float]:
    low, high = temperature_range
    if steps < 2:
        return [round(low, 2)]
    step = (high - low) / (steps - 1)
    return [round(low + i * step, 2) for i in range(steps)]


def build_grid(settings: Dict[str, Any]) -> List[Dict[str, Any]]:
    temperatures = temperature_values(settings.get('temperature_range') or [0.1, 0.9],
                                      settings.get('temperature_steps') or 5)
    other_params = settings.get('other_params') or {}
    if not other_params:
        return [{'temperature': t} for t in temperatures]

    name, values = next(iter(other_params.items()))
    return [{'temperature': t, name: value} for t in temperatures for value in values]


def _variance(values: List[float]) -> float:
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def quality_spread(points: List[GridPointResult], name: str) -> float:
    """Variance of mean quality across the distinct values of one parameter, x2, capped at 10."""
    groups: Dict[Any, List[float]] = {}
    for point in points:
        key = json.dumps(point.parameters.get(name), sort_keys=True, default=str)
        groups.setdefault(key, []).append(point.quality)
    if len(groups) < 2:
        return 0.0
    means = [sum(q) / len(q) for q in groups.values()]
    return min(10.0, _variance(means) * 2)


def analyze_points(points: List[GridPointResult]) -> ParameterMetrics:
    if not points:
        raise AggregationError("no parameter test results to analyse")

    best = points[0]
    for point in points[1:]:
        if point.objective > best.objective:
            best = point

    return ParameterMetrics(
        temperature_impact=quality_spread(points, 'temperature'),
        consistency_across_params=sum(p.consistency for p in points) / len(points),
        optimal_parameters=dict(best.parameters),
        parameter_sensitivity={name: quality_spread(points, name) for name in points[0].parameters},
    )


def parameter_score(metrics: ParameterMetrics) -> float:
    score = 5

    temperature = metrics.optimal_parameters.get('temperature')
    if temperature is not None and 0.3 <= temperature <= 0.8:
        score += 2

    if metrics.consistency_across_params >= 7:
        score += 2
    elif metrics.consistency_across_params >= 5:
        score += 1

    sensitivities = list(metrics.parameter_sensitivity.values())
    if sensitivities and 2 <= sum(sensitivities) / len(sensitivities) <= 6:
        score += 1

    return min(10, max(0, score))


class ParameterExecutor(TestExecutor):
    test_type = TestType.PARAMETER
    default_scorer = SampleQualityScorer
    default_call_delay_s = 0.5

    async def execute(self, question: Question, models: List[str],
                      config: Dict[str, Any]) -> List[BenchmarkResult]:
        settings = self.section(config)
        results = []

        for model in models:
            points = await self.run_sweep(model, question, settings)
            metrics = analyze_points(points)

            try:
                response = await self.call_model(model, question.text, dict(metrics.optimal_parameters))
            except InvocationError as e:
                log.warning("parameter test skipped for %s: final call failed: %s", model, e)
                continue

            results.append(self.create_result(
                question, response, metrics, parameter_score(metrics),
                notes=f"Optimal parameters found: {json.dumps(metrics.optimal_parameters, default=str)}",
            ))
        return results

    async def run_sweep(self, model: str, question: Question, settings: Dict[str, Any]) -> List[GridPointResult]:
        points = []
        for parameters in build_grid(settings):
            responses = []
            for i in range(CALLS_PER_POINT):
                try:
                    responses.append(await self.call_model(model, question.text, dict(parameters)))
                except InvocationError as e:
                    log.debug("parameter iteration %d failed for %s %s: %s", i + 1, model, parameters, e)
                    continue
                await self.pause()

            if not responses:
                log.warning("parameter set %s dropped for %s: no successful calls", parameters, model)
                continue

            texts = [r.response for r in responses]
            quality = sum(self.scorer.score(question, t) for t in texts) / len(texts)
            consistency = pairwise_mean_similarity(texts) * 10 if len(texts) >= 2 else 10.0
            points.append(GridPointResult(parameters, responses, quality, consistency))
        return points

    def validate_config(self, config: Dict[str, Any]) -> bool:
        settings = (config or {}).get('parameter')
        if not isinstance(settings, dict):
            return False
        temperature_range = settings.get('temperature_range')
        steps = settings.get('temperature_steps')
        other_params = settings.get('other_params', {})
        if not (isinstance(temperature_range, (list, tuple)) and len(temperature_range) == 2):
            return False
        if not all(_is_number(bound) for bound in temperature_range):
            return False
        low, high = temperature_range
        if not 0 <= low <= high:
            return False
        if not (isinstance(steps, int) and not isinstance(steps, bool) and steps > 1):
            return False
        if not isinstance(other_params, dict):
            return False
        return all(isinstance(values, list) and values for values in other_params.values())

    def get_estimated_duration(self, question_count: int, model_count: int) -> int:
        return question_count * model_count * 5 * 3 * CALLS_PER_POINT * 30000

    def get_required_models(self) -> List[str]:
        return ['llama2:7b', 'mistral:7b']
