import logging
from typing import Any, Dict, List

from bench.errors import InvocationError
from bench.question import BenchmarkResult, Question, TestType
from bench.scorer import QualityScorer

from .base import TestExecutor


log = logging.getLogger(__name__)


class QualitativeExecutor(TestExecutor):
    test_type = TestType.QUALITATIVE
    default_scorer = QualityScorer
    default_estimate_ms = 45000

    async def execute(self, question: Question, models: List[str],
                      config: Dict[str, Any]) -> List[BenchmarkResult]:
        results = []
        for model in models:
            try:
                response = await self.call_model(model, question.text)
            except InvocationError as e:
                log.warning("qualitative test skipped for %s: %s", model, e)
                continue

            metrics = self.scorer.evaluate(question, response.response)
            score = self.scorer.composite(metrics)
            results.append(self.create_result(
                question, response, metrics, score,
                notes=f"Automatic evaluation - {question.category.value}",
            ))
        return results

    def validate_config(self, config: Dict[str, Any]) -> bool:
        settings = (config or {}).get('qualitative')
        if not isinstance(settings, dict):
            return False
        weight = settings.get('auto_evaluation_weight')
        return (isinstance(settings.get('human_evaluation_required'), bool)
                and isinstance(weight, (int, float)) and not isinstance(weight, bool))
