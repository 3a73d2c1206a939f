from .question import (
    BenchmarkExecution,
    BenchmarkResult,
    BenchmarkSuite,
    ExecutionStatus,
    ModelResponse,
    Question,
    QuestionCategory,
    TestType,
)
from .suite import SuiteLoader
from .quick import QuickSmokeSuite
from .similarity import text_similarity
from .prompt import PromptBuilder

__all__ = ['BenchmarkExecution', 'BenchmarkResult', 'BenchmarkSuite', 'ExecutionStatus', 'ModelResponse',
           'Question', 'QuestionCategory', 'TestType', 'SuiteLoader', 'QuickSmokeSuite', 'text_similarity',
           'PromptBuilder']
