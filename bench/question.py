from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union


class QuestionCategory(str, Enum):
    LOGICAL_REASONING = 'logical_reasoning'
    CREATIVE_WRITING = 'creative_writing'
    FACTUAL_KNOWLEDGE = 'factual_knowledge'
    MATH_PROBLEM = 'math_problem'
    CODE_GENERATION = 'code_generation'
    LANGUAGE_UNDERSTANDING = 'language_understanding'
    ETHICAL_REASONING = 'ethical_reasoning'
    TECHNICAL_ANALYSIS = 'technical_analysis'


class DifficultyLevel(str, Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'
    EXPERT = 'expert'


class TestType(str, Enum):
    QUALITATIVE = 'qualitative'
    STABILITY = 'stability'
    API_IO = 'api_io'
    REAL_DATA = 'real_data'
    PARAMETER = 'parameter'
    PROMPT_ALTERNATIVE = 'prompt_alternative'
    SMOKE = 'smoke'

    __test__ = False

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    TestType.QUALITATIVE: 'Qualitative Tests',
    TestType.STABILITY: 'Stability Tests',
    TestType.API_IO: 'API / I-O Tests',
    TestType.REAL_DATA: 'Real Data Tests',
    TestType.PARAMETER: 'Parameter Tests',
    TestType.PROMPT_ALTERNATIVE: 'Prompt Alternative Tests',
    TestType.SMOKE: 'Smoke Tests',
}


class ExecutionStatus(str, Enum):
    PENDING = 'pending'
    RUNNING = 'running'
    COMPLETED = 'completed'
    FAILED = 'failed'
    CANCELLED = 'cancelled'

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED, ExecutionStatus.CANCELLED)


def _to_plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, '__dataclass_fields__'):
        return {f.name: _to_plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {(k.value if isinstance(k, Enum) else k): _to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_plain(v) for v in value]
    return value


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    category: QuestionCategory
    difficulty: DifficultyLevel = DifficultyLevel.MEDIUM
    keywords: Optional[List[str]] = None
    expected_answer_length: Optional[int] = None
    evaluation_criteria: Optional[List[str]] = None
    baseline_answer: Optional[str] = None
    context: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _to_plain(self)


@dataclass(frozen=True)
class ModelResponse:
    id: str
    model_name: str
    response: str
    response_time_ms: int
    timestamp: datetime
    token_count: Optional[int] = None
    temperature: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SmokeMetrics:
    TEST_TYPE: ClassVar[TestType] = TestType.SMOKE
    basic_functionality: bool
    response_completeness: bool
    no_errors: bool
    within_time_limit: bool


@dataclass
class QualitativeMetrics:
    TEST_TYPE: ClassVar[TestType] = TestType.QUALITATIVE
    relevance: float
    coherence: float
    accuracy: float
    completeness: float
    creativity: Optional[float] = None
    technical_depth: Optional[float] = None


@dataclass
class StabilityMetrics:
    TEST_TYPE: ClassVar[TestType] = TestType.STABILITY
    consistency: float
    variability: float
    convergence_rate: float
    outlier_count: int


@dataclass
class ApiIoMetrics:
    TEST_TYPE: ClassVar[TestType] = TestType.API_IO
    average_response_time: float
    max_response_time: float
    min_response_time: float
    error_rate: float
    throughput: float
    success_rate: float


@dataclass
class RealDataMetrics:
    TEST_TYPE: ClassVar[TestType] = TestType.REAL_DATA
    relevance_to_context: float
    practical_applicability: float
    data_handling_accuracy: float
    real_world_viability: float


@dataclass
class ParameterMetrics:
    TEST_TYPE: ClassVar[TestType] = TestType.PARAMETER
    temperature_impact: float
    consistency_across_params: float
    optimal_parameters: Dict[str, Any]
    parameter_sensitivity: Dict[str, float]


@dataclass
class PromptAlternativeMetrics:
    TEST_TYPE: ClassVar[TestType] = TestType.PROMPT_ALTERNATIVE
    best_prompt_variant: str
    prompt_sensitivity: float
    consistency_across_prompts: float
    improvement_from_optimization: float


Metrics = Union[
    SmokeMetrics,
    QualitativeMetrics,
    StabilityMetrics,
    ApiIoMetrics,
    RealDataMetrics,
    ParameterMetrics,
    PromptAlternativeMetrics,
]


def clamp_score(score: float) -> float:
    return max(0.0, min(10.0, float(score)))


@dataclass
class BenchmarkResult:
    id: str
    question_id: str
    model_name: str
    test_type: TestType
    response: ModelResponse
    metrics: Metrics
    overall_score: float
    evaluated_at: datetime
    notes: Optional[str] = None
    evaluated_by: str = 'auto'

    def __post_init__(self):
        if self.metrics.TEST_TYPE != self.test_type:
            raise ValueError(
                f"metrics {type(self.metrics).__name__} do not match test type {self.test_type.value}"
            )
        self.overall_score = clamp_score(self.overall_score)

    def to_dict(self) -> Dict[str, Any]:
        data = _to_plain(self)
        data['metrics_type'] = self.metrics.TEST_TYPE.value
        return data


@dataclass
class BenchmarkSuite:
    id: str
    name: str
    test_types: List[TestType]
    questions: List[Question]
    models: List[str]
    configuration: Dict[str, Any]
    description: str = ''


@dataclass
class ModelRanking:
    model_name: str
    average_score: float
    rank: int
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)


@dataclass
class CategoryPerformance:
    average_score: float
    best_model: str
    worst_model: str


@dataclass
class TestTypePerformance:
    average_score: float
    completion_rate: float

    __test__ = False


@dataclass
class BenchmarkSummary:
    total_tests: int = 0
    completed_tests: int = 0
    failed_tests: int = 0
    average_score: float = 0.0
    model_rankings: List[ModelRanking] = field(default_factory=list)
    category_performance: Dict[str, CategoryPerformance] = field(default_factory=dict)
    test_type_performance: Dict[str, TestTypePerformance] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _to_plain(self)


@dataclass
class BenchmarkExecution:
    id: str
    suite_id: str
    started_at: datetime
    status: ExecutionStatus = ExecutionStatus.PENDING
    progress: int = 0
    completed_at: Optional[datetime] = None
    results: List[BenchmarkResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    summary: BenchmarkSummary = field(default_factory=BenchmarkSummary)
    total_tests: int = 0
    completed_tests: int = 0
    failed_tests: int = 0

    def cancel(self) -> bool:
        if not self.status.is_terminal:
            self.status = ExecutionStatus.CANCELLED
            return True
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'suite_id': self.suite_id,
            'status': self.status.value,
            'progress': self.progress,
            'started_at': _to_plain(self.started_at),
            'completed_at': _to_plain(self.completed_at),
            'results': [r.to_dict() for r in self.results],
            'errors': list(self.errors),
            'summary': self.summary.to_dict(),
        }
