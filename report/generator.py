import json
from pathlib import Path
from typing import Dict, List

from bench.question import BenchmarkExecution, BenchmarkSuite, TestType
from .visualizer import ResultVisualizer


class ReportGenerator:
    def __init__(self, suite: BenchmarkSuite, output_dir: str):
        self.suite = suite
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def generate(self, execution: BenchmarkExecution, charts: bool = True) -> Dict[str, str]:
        paths = {
            'results': self.save_results(execution),
            'report': self.generate_report(execution),
        }
        if charts:
            for path in ResultVisualizer(str(self.output_dir)).generate_all(execution):
                paths[Path(path).stem] = path
        return paths

    def save_results(self, execution: BenchmarkExecution) -> str:
        payload = execution.to_dict()
        payload['suite'] = {
            'id': self.suite.id,
            'name': self.suite.name,
            'description': self.suite.description,
            'models': list(self.suite.models),
            'test_types': [t.value for t in self.suite.test_types],
            'questions': [q.to_dict() for q in self.suite.questions],
        }
        path = self.output_dir / "execution.json"
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        return str(path)

    def generate_report(self, execution: BenchmarkExecution) -> str:
        summary = execution.summary
        lines: List[str] = []
        lines.append(f"# Benchmark report: {self.suite.name}\n")
        if self.suite.description:
            lines.append(f"{self.suite.description}\n")
        lines.append(f"**Execution**: {execution.id}\n")
        lines.append(f"**Status**: {execution.status.value}\n")
        lines.append(f"**Started**: {_fmt_time(execution.started_at)}\n")
        lines.append(f"**Finished**: {_fmt_time(execution.completed_at)}\n")
        lines.append(f"**Models**: {len(self.suite.models)} | **Questions**: {len(self.suite.questions)} | "
                     f"**Test types**: {len(self.suite.test_types)}\n")
        lines.append(f"**Tests**: {summary.completed_tests} completed, {summary.failed_tests} failed, "
                     f"{summary.total_tests} planned\n")
        lines.append(f"**Average score**: {summary.average_score:.2f}\n")
        lines.append("---\n")

        lines.append("## Model rankings\n")
        lines.append(self._generate_rankings_table(execution))

        if summary.test_type_performance:
            lines.append("\n## Performance by test type\n")
            lines.append(self._generate_test_type_table(execution))

        if summary.category_performance:
            lines.append("\n## Performance by question category\n")
            lines.append(self._generate_category_table(execution))

        if execution.errors:
            lines.append("\n## Errors\n")
            lines.extend(f"- {e}" for e in execution.errors)

        report_path = self.output_dir / "report.md"
        report_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return str(report_path)

    def _generate_rankings_table(self, execution: BenchmarkExecution) -> str:
        lines: List[str] = []
        lines.append("| Rank | Model | Average score | Strengths | Weaknesses |")
        lines.append("|------|-------|---------------|-----------|------------|")
        for r in execution.summary.model_rankings:
            strengths = ", ".join(r.strengths) or "-"
            weaknesses = ", ".join(r.weaknesses) or "-"
            lines.append(f"| {r.rank} | {r.model_name} | {r.average_score:.2f} | {strengths} | {weaknesses} |")
        return "\n".join(lines)

    def _generate_test_type_table(self, execution: BenchmarkExecution) -> str:
        lines: List[str] = []
        lines.append("| Test type | Average score | Completion rate |")
        lines.append("|-----------|---------------|-----------------|")
        for key, perf in execution.summary.test_type_performance.items():
            lines.append(f"| {TestType(key).display_name} | {perf.average_score:.2f} | {perf.completion_rate:.1f}% |")
        return "\n".join(lines)

    def _generate_category_table(self, execution: BenchmarkExecution) -> str:
        lines: List[str] = []
        lines.append("| Category | Average score | Best model | Worst model |")
        lines.append("|----------|---------------|------------|-------------|")
        for category, perf in execution.summary.category_performance.items():
            lines.append(f"| {category} | {perf.average_score:.2f} | {perf.best_model} | {perf.worst_model} |")
        return "\n".join(lines)


def _fmt_time(value) -> str:
    return value.strftime('%Y-%m-%d %H:%M:%S') if value else '-'
