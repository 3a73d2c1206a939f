from typing import Any, Dict, List, Optional

from .config import with_defaults
from .providers import Providers
from .question import BenchmarkSuite, DifficultyLevel, Question, QuestionCategory, TestType


class QuickSmokeSuite:
    """Three trivial questions and a fast configuration for a sanity pass."""

    @staticmethod
    def essential_questions() -> List[Question]:
        return [
            Question(
                id='smoke-basic-1',
                text='What is 2 + 2?',
                category=QuestionCategory.MATH_PROBLEM,
                difficulty=DifficultyLevel.EASY,
                expected_answer_length=10,
            ),
            Question(
                id='smoke-basic-2',
                text='Name three colors.',
                category=QuestionCategory.FACTUAL_KNOWLEDGE,
                difficulty=DifficultyLevel.EASY,
                expected_answer_length=20,
            ),
            Question(
                id='smoke-basic-3',
                text='Write a simple greeting.',
                category=QuestionCategory.LANGUAGE_UNDERSTANDING,
                difficulty=DifficultyLevel.EASY,
                expected_answer_length=15,
            ),
        ]

    @staticmethod
    def basic_configuration() -> Dict[str, Any]:
        return with_defaults({
            'timeout_ms': 15000,
            'stability': {'iteration_count': 2, 'consistency_threshold': 0.5},
            'api_io': {'concurrent_requests': 2, 'load_test_duration': 10000},
            'real_data': {'context_size': 500},
            'parameter': {'temperature_range': [0.1, 0.5], 'temperature_steps': 2},
            'smoke': {'time_limit': 8000, 'basic_checks': ['proper_length', 'no_repetition']},
        })

    @classmethod
    def build(cls, models: List[str], providers: Optional[Providers] = None) -> BenchmarkSuite:
        providers = providers or Providers()
        return BenchmarkSuite(
            id=providers.new_id(),
            name='Quick Smoke Test',
            description='Fast check that every model answers basic prompts',
            test_types=[TestType.SMOKE],
            questions=cls.essential_questions(),
            models=list(models),
            configuration=cls.basic_configuration(),
        )
