from typing import Dict, List

from bench.question import (
    BenchmarkResult,
    BenchmarkSummary,
    BenchmarkSuite,
    CategoryPerformance,
    ModelRanking,
    TestType,
    TestTypePerformance,
)

STRENGTH_THRESHOLD = 8.0
WEAKNESS_THRESHOLD = 4.0


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


class SummaryBuilder:
    """Aggregates a list of results into rankings and per-category / per-type tables."""

    def __init__(self, suite: BenchmarkSuite):
        self.suite = suite
        self.q_map = {q.id: q for q in suite.questions}

    def build(self, results: List[BenchmarkResult], total_tests: int = 0,
              completed_tests: int = 0, failed_tests: int = 0) -> BenchmarkSummary:
        scored = [r.overall_score for r in results if r.overall_score > 0]
        return BenchmarkSummary(
            total_tests=total_tests,
            completed_tests=completed_tests,
            failed_tests=failed_tests,
            average_score=_mean(scored),
            model_rankings=self.model_rankings(results),
            category_performance=self.category_performance(results),
            test_type_performance=self.test_type_performance(results),
        )

    def scores_by_test_type(self, results: List[BenchmarkResult], model: str) -> Dict[TestType, List[float]]:
        by_type: Dict[TestType, List[float]] = {}
        for r in results:
            if r.model_name == model:
                by_type.setdefault(r.test_type, []).append(r.overall_score)
        return by_type

    def strengths(self, results: List[BenchmarkResult], model: str) -> List[str]:
        return [t.display_name for t, scores in self.scores_by_test_type(results, model).items()
                if _mean(scores) >= STRENGTH_THRESHOLD]

    def weaknesses(self, results: List[BenchmarkResult], model: str) -> List[str]:
        return [t.display_name for t, scores in self.scores_by_test_type(results, model).items()
                if _mean(scores) <= WEAKNESS_THRESHOLD]

    def model_rankings(self, results: List[BenchmarkResult]) -> List[ModelRanking]:
        scores: Dict[str, List[float]] = {m: [] for m in self.suite.models}
        for r in results:
            if r.model_name in scores:
                scores[r.model_name].append(r.overall_score)

        rankings = [
            ModelRanking(
                model_name=model,
                average_score=_mean(model_scores),
                rank=0,
                strengths=self.strengths(results, model),
                weaknesses=self.weaknesses(results, model),
            )
            for model, model_scores in scores.items()
        ]
        # sorted() is stable: equal averages keep suite model order
        rankings = sorted(rankings, key=lambda r: r.average_score, reverse=True)
        for i, ranking in enumerate(rankings):
            ranking.rank = i + 1
        return rankings

    def category_performance(self, results: List[BenchmarkResult]) -> Dict[str, CategoryPerformance]:
        grouped: Dict[str, List[BenchmarkResult]] = {}
        for r in results:
            question = self.q_map.get(r.question_id)
            if question is not None:
                grouped.setdefault(question.category.value, []).append(r)

        performance = {}
        for category, category_results in grouped.items():
            best = worst = category_results[0]
            for r in category_results[1:]:
                if r.overall_score > best.overall_score:
                    best = r
                if r.overall_score < worst.overall_score:
                    worst = r
            performance[category] = CategoryPerformance(
                average_score=_mean([r.overall_score for r in category_results]),
                best_model=best.model_name,
                worst_model=worst.model_name,
            )
        return performance

    def test_type_performance(self, results: List[BenchmarkResult]) -> Dict[str, TestTypePerformance]:
        performance = {}
        for test_type in self.suite.test_types:
            type_results = [r for r in results if r.test_type == test_type]
            if not type_results:
                continue
            passed = sum(1 for r in type_results if r.overall_score > 0)
            performance[test_type.value] = TestTypePerformance(
                average_score=_mean([r.overall_score for r in type_results]),
                completion_rate=passed / len(type_results) * 100,
            )
        return performance
