from typing import Any, Dict, List, Optional

from .config import deep_merge, load_yaml, with_defaults
from .errors import ConfigurationError
from .question import BenchmarkSuite, DifficultyLevel, Question, QuestionCategory, TestType


class SuiteLoader:
    def __init__(self, file_path: str, base_configuration: Optional[Dict[str, Any]] = None):
        self.file_path = file_path
        self.base_configuration = base_configuration

    def load(self) -> BenchmarkSuite:
        return parse_suite(load_yaml(self.file_path), source=self.file_path,
                           base_configuration=self.base_configuration)


def parse_question(data: Dict[str, Any], index: int = 0) -> Question:
    if not isinstance(data, dict):
        raise ConfigurationError(f"question #{index + 1} must be a mapping")
    text = data.get('text')
    if not text:
        raise ConfigurationError(f"question #{index + 1} has no text")

    try:
        category = QuestionCategory(data.get('category', QuestionCategory.FACTUAL_KNOWLEDGE.value))
        difficulty = DifficultyLevel(data.get('difficulty', DifficultyLevel.MEDIUM.value))
    except ValueError as e:
        raise ConfigurationError(f"question #{index + 1}: {e}") from e

    expected = data.get('expected_answer_length')
    return Question(
        id=str(data.get('id') or f"q{index + 1}"),
        text=text,
        category=category,
        difficulty=difficulty,
        keywords=list(data['keywords']) if data.get('keywords') else None,
        expected_answer_length=int(expected) if expected is not None else None,
        evaluation_criteria=list(data['evaluation_criteria']) if data.get('evaluation_criteria') else None,
        baseline_answer=data.get('baseline_answer'),
        context=data.get('context'),
    )


def parse_test_types(values: List[str]) -> List[TestType]:
    test_types = []
    for value in values or []:
        try:
            test_types.append(TestType(value))
        except ValueError as e:
            raise ConfigurationError(f"unknown test type: {value}") from e
    return test_types


def parse_suite(data: Dict[str, Any], source: str = "<suite>",
                base_configuration: Optional[Dict[str, Any]] = None) -> BenchmarkSuite:
    questions = [parse_question(q, i) for i, q in enumerate(data.get('questions') or [])]
    return BenchmarkSuite(
        id=str(data.get('id') or source),
        name=data.get('name') or source,
        description=data.get('description') or '',
        test_types=parse_test_types(data.get('test_types') or []),
        questions=questions,
        models=[str(m) for m in data.get('models') or []],
        configuration=deep_merge(with_defaults(base_configuration), data.get("configuration")),
    )
