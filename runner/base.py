import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from bench.errors import InvocationError, InvocationTimeoutError
from bench.providers import Providers
from bench.question import BenchmarkResult, Metrics, ModelResponse, Question, TestType
from models.invoker import ModelInvoker


log = logging.getLogger(__name__)


class TestExecutor(ABC):
    """One benchmarking strategy.

    ``execute`` returns one result per model (or skips a model, depending on
    the strategy) and never lets a single model's call failure escape.
    Configuration problems raise ConfigurationError; having nothing to
    aggregate raises AggregationError.
    """

    __test__ = False

    test_type: TestType
    default_scorer = None
    default_call_delay_s = 0.0
    default_estimate_ms = 30000

    def __init__(self, invoker: ModelInvoker, providers: Optional[Providers] = None,
                 scorer=None, call_delay_s: Optional[float] = None):
        self.invoker = invoker
        self.providers = providers or Providers()
        if scorer is None and self.default_scorer is not None:
            scorer = self.default_scorer()
        self.scorer = scorer
        self.call_delay_s = self.default_call_delay_s if call_delay_s is None else call_delay_s

    @abstractmethod
    async def execute(self, question: Question, models: List[str],
                      config: Dict[str, Any]) -> List[BenchmarkResult]:
        pass

    @abstractmethod
    def validate_config(self, config: Dict[str, Any]) -> bool:
        pass

    def get_required_models(self) -> List[str]:
        return []

    def get_estimated_duration(self, question_count: int, model_count: int) -> int:
        return question_count * model_count * self.default_estimate_ms

    def section(self, config: Dict[str, Any]) -> Dict[str, Any]:
        return (config or {}).get(self.test_type.value) or {}

    async def call_model(self, model: str, prompt: str,
                         params: Optional[Dict[str, Any]] = None) -> ModelResponse:
        try:
            return await self.invoker.invoke(model, prompt, params)
        except InvocationError:
            raise
        except Exception as e:
            raise InvocationError(model, str(e) or repr(e)) from e

    async def call_model_with_timeout(self, model: str, prompt: str, timeout_ms: int,
                                      params: Optional[Dict[str, Any]] = None) -> ModelResponse:
        try:
            return await asyncio.wait_for(self.call_model(model, prompt, params), timeout_ms / 1000)
        except asyncio.TimeoutError:
            raise InvocationTimeoutError(model, timeout_ms) from None

    async def pause(self, seconds: Optional[float] = None):
        seconds = self.call_delay_s if seconds is None else seconds
        if seconds > 0:
            await asyncio.sleep(seconds)

    def create_result(self, question: Question, response: ModelResponse, metrics: Metrics,
                      score: float, notes: Optional[str] = None) -> BenchmarkResult:
        return BenchmarkResult(
            id=self.providers.new_id(),
            question_id=question.id,
            model_name=response.model_name,
            test_type=self.test_type,
            response=response,
            metrics=metrics,
            overall_score=score,
            evaluated_at=self.providers.now(),
            notes=notes,
        )

    def create_failure_response(self, model: str, error: Exception, elapsed_ms: int) -> ModelResponse:
        return ModelResponse(
            id=self.providers.new_id(),
            model_name=model,
            response=f"ERROR: {error}",
            response_time_ms=elapsed_ms,
            timestamp=self.providers.now(),
        )
