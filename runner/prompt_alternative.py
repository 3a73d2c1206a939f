import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List

from bench.errors import AggregationError, InvocationError
from bench.prompt import PromptBuilder, PromptVariant
from bench.question import BenchmarkResult, PromptAlternativeMetrics, Question, TestType
from bench.scorer import PromptQualityScorer
from bench.similarity import pairwise_mean_similarity

from .base import TestExecutor


log = logging.getLogger(__name__)

CALLS_PER_VARIANT = 2
VARIANT_TEMPERATURE = 0.7
EVALUATION_METHODS = ('quality', 'similarity', 'both')


@dataclass
class VariantResult:
    variant: PromptVariant
    quality: float
    consistency: float


def _pick_best(results: List[VariantResult], method: str) -> VariantResult:
    if method == 'similarity':
        key = lambda r: r.consistency
    elif method == 'both':
        key = lambda r: r.quality * 0.7 + r.consistency * 0.3
    else:
        key = lambda r: r.quality

    best = results[0]
    for result in results[1:]:
        if key(result) > key(best):
            best = result
    return best


def analyze_variants(results: List[VariantResult], method: str = 'quality') -> PromptAlternativeMetrics:
    if not results:
        raise AggregationError("no prompt variant results to analyse")

    best = _pick_best(results, method)

    qualities = [r.quality for r in results]
    if len(qualities) < 2:
        sensitivity = 0.0
    else:
        mean = sum(qualities) / len(qualities)
        std = math.sqrt(sum((q - mean) ** 2 for q in qualities) / len(qualities))
        sensitivity = min(10.0, std * 2)

    original = next((r for r in results if r.variant.type == 'original'), None)
    improvement = 0.0
    if original is not None and original.quality > 0:
        improvement = max(0.0, (best.quality - original.quality) / original.quality * 100)

    return PromptAlternativeMetrics(
        best_prompt_variant=best.variant.prompt,
        prompt_sensitivity=sensitivity,
        consistency_across_prompts=sum(r.consistency for r in results) / len(results),
        improvement_from_optimization=improvement,
    )


def prompt_alternative_score(metrics: PromptAlternativeMetrics) -> float:
    score = 5

    if metrics.improvement_from_optimization > 20:
        score += 3
    elif metrics.improvement_from_optimization > 10:
        score += 2
    elif metrics.improvement_from_optimization > 5:
        score += 1

    if metrics.consistency_across_prompts >= 7:
        score += 2
    elif metrics.consistency_across_prompts >= 5:
        score += 1

    if 3 <= metrics.prompt_sensitivity <= 7:
        score += 1

    return min(10, max(0, score))


def _truncate(prompt: str, limit: int = 100) -> str:
    return prompt if len(prompt) <= limit else prompt[:limit] + '...'


class PromptAlternativeExecutor(TestExecutor):
    test_type = TestType.PROMPT_ALTERNATIVE
    default_scorer = PromptQualityScorer
    default_call_delay_s = 0.5

    async def execute(self, question: Question, models: List[str],
                      config: Dict[str, Any]) -> List[BenchmarkResult]:
        settings = self.section(config)
        method = settings.get('evaluation_method') or 'quality'
        variants = PromptBuilder.variants(question, settings.get('prompt_variants') or [])
        results = []

        for model in models:
            variant_results = await self.run_variants(model, question, variants)
            metrics = analyze_variants(variant_results, method)

            try:
                response = await self.call_model(model, metrics.best_prompt_variant)
            except InvocationError as e:
                log.warning("prompt alternative test skipped for %s: final call failed: %s", model, e)
                continue

            results.append(self.create_result(
                question, response, metrics, prompt_alternative_score(metrics),
                notes=f'Best prompt found: "{_truncate(metrics.best_prompt_variant)}"',
            ))
        return results

    async def run_variants(self, model: str, question: Question,
                           variants: List[PromptVariant]) -> List[VariantResult]:
        results = []
        for variant in variants:
            texts = []
            for i in range(CALLS_PER_VARIANT):
                try:
                    response = await self.call_model(model, variant.prompt, {'temperature': VARIANT_TEMPERATURE})
                except InvocationError as e:
                    log.debug("variant %s iteration %d failed for %s: %s", variant.type, i + 1, model, e)
                    continue
                texts.append(response.response)
                await self.pause()

            if not texts:
                log.warning("prompt variant %s dropped for %s: no successful calls", variant.type, model)
                continue

            quality = sum(self.scorer.score(question, t) for t in texts) / len(texts)
            consistency = pairwise_mean_similarity(texts) * 10 if len(texts) >= 2 else 10.0
            results.append(VariantResult(variant, quality, consistency))
        return results

    def validate_config(self, config: Dict[str, Any]) -> bool:
        settings = (config or {}).get('prompt_alternative')
        if not isinstance(settings, dict):
            return False
        variants = settings.get('prompt_variants')
        return (isinstance(variants, list) and all(isinstance(v, str) for v in variants)
                and settings.get('evaluation_method') in EVALUATION_METHODS)

    def get_estimated_duration(self, question_count: int, model_count: int) -> int:
        return question_count * model_count * 8 * CALLS_PER_VARIANT * 25000
