import logging
from typing import Any, Callable, Dict, List, Optional

from bench.errors import ConfigurationError
from bench.providers import Providers
from bench.question import (
    BenchmarkExecution,
    BenchmarkResult,
    BenchmarkSuite,
    ExecutionStatus,
    Question,
    TestType,
)
from models.invoker import ModelInvoker
from report.analyzer import SummaryBuilder

from .api_io import ApiIoExecutor
from .base import TestExecutor
from .parameter import ParameterExecutor
from .prompt_alternative import PromptAlternativeExecutor
from .qualitative import QualitativeExecutor
from .real_data import RealDataExecutor
from .smoke import SmokeExecutor
from .stability import StabilityExecutor


log = logging.getLogger(__name__)

EXECUTOR_CLASSES = [
    QualitativeExecutor,
    StabilityExecutor,
    ApiIoExecutor,
    RealDataExecutor,
    ParameterExecutor,
    PromptAlternativeExecutor,
    SmokeExecutor,
]

ProgressCallback = Callable[[BenchmarkExecution], None]
DetailedLogCallback = Callable[[str, str], None]


def default_executors(invoker: ModelInvoker, providers: Optional[Providers] = None,
                      **kwargs) -> Dict[TestType, TestExecutor]:
    return {cls.test_type: cls(invoker, providers, **kwargs) for cls in EXECUTOR_CLASSES}


class BenchmarkOrchestrator:
    """Runs a suite: every test type x every question, all models per executor call.

    Test types and questions run one after another. Each ``run_suite`` call
    owns its own BenchmarkExecution; concurrent suites share no state.
    """

    def __init__(self, invoker: ModelInvoker, providers: Optional[Providers] = None,
                 executors: Optional[Dict[TestType, TestExecutor]] = None,
                 on_progress_update: Optional[ProgressCallback] = None,
                 on_detailed_log: Optional[DetailedLogCallback] = None):
        self.providers = providers or Providers()
        self.executors = executors if executors is not None else default_executors(invoker, self.providers)
        self.on_progress_update = on_progress_update
        self.on_detailed_log = on_detailed_log
        self.active: Dict[str, BenchmarkExecution] = {}

    def _emit(self, level: int, message: str, *args):
        log.log(level, message, *args)
        if self.on_detailed_log is None:
            return
        try:
            self.on_detailed_log(message % args if args else message, logging.getLevelName(level).lower())
        except Exception:
            log.warning("detailed log callback raised", exc_info=True)

    def _notify_progress(self, execution: BenchmarkExecution):
        if self.on_progress_update is None:
            return
        try:
            self.on_progress_update(execution)
        except Exception:
            log.warning("progress callback raised", exc_info=True)

    def _executor(self, test_type: TestType) -> TestExecutor:
        executor = self.executors.get(test_type)
        if executor is None:
            raise ConfigurationError(f"Invalid test type: {getattr(test_type, 'value', test_type)}")
        return executor

    def validate_suite(self, suite: BenchmarkSuite):
        if not suite.questions:
            raise ConfigurationError("Benchmark suite must contain at least one question")
        if not suite.models:
            raise ConfigurationError("Benchmark suite must specify at least one model")
        if not suite.test_types:
            raise ConfigurationError("Benchmark suite must specify at least one test type")

        for test_type in suite.test_types:
            if not self._executor(test_type).validate_config(suite.configuration):
                raise ConfigurationError(f"Invalid configuration for test type: {test_type.value}")

        missing = [m for m in self.get_required_models(suite) if m not in suite.models]
        if missing:
            self._emit(logging.WARNING, "missing recommended models for optimal testing: %s", ', '.join(missing))

    async def run_suite(self, suite: BenchmarkSuite) -> BenchmarkExecution:
        self.validate_suite(suite)

        execution = BenchmarkExecution(
            id=self.providers.new_id(),
            suite_id=suite.id,
            started_at=self.providers.now(),
            status=ExecutionStatus.PENDING,
            total_tests=len(suite.questions) * len(suite.models) * len(suite.test_types),
        )
        execution.summary.total_tests = execution.total_tests
        self.active[execution.id] = execution
        self._emit(logging.INFO, "starting suite %s (%d tests)", suite.name, execution.total_tests)

        try:
            await self._run(suite, execution)
            if execution.status == ExecutionStatus.RUNNING:
                execution.status = ExecutionStatus.COMPLETED
        except Exception as e:
            execution.status = ExecutionStatus.FAILED
            execution.errors.append(f"Execution failed: {e}")
            log.exception("suite %s failed", suite.name)
        finally:
            execution.completed_at = self.providers.now()
            execution.summary = SummaryBuilder(suite).build(
                execution.results,
                total_tests=execution.total_tests,
                completed_tests=execution.completed_tests,
                failed_tests=execution.failed_tests,
            )
            self.active.pop(execution.id, None)

        self._emit(logging.INFO, "suite %s finished with status %s", suite.name, execution.status.value)
        return execution

    async def _run(self, suite: BenchmarkSuite, execution: BenchmarkExecution):
        if execution.status == ExecutionStatus.PENDING:
            execution.status = ExecutionStatus.RUNNING
        for test_type in suite.test_types:
            executor = self._executor(test_type)
            self._emit(logging.INFO, "executing %s tests", test_type.value)

            for question in suite.questions:
                if execution.status == ExecutionStatus.CANCELLED:
                    self._emit(logging.INFO, "execution %s cancelled", execution.id)
                    return

                try:
                    results = await executor.execute(question, suite.models, suite.configuration)
                except Exception as e:
                    message = f"Failed to execute {test_type.value} test for question {question.id}: {e}"
                    execution.errors.append(message)
                    execution.failed_tests += 1
                    execution.summary.failed_tests = execution.failed_tests
                    self._emit(logging.ERROR, message)
                    continue

                execution.results.extend(results)
                execution.completed_tests += len(results)
                execution.summary.completed_tests = execution.completed_tests
                if execution.total_tests:
                    progress = round(execution.completed_tests / execution.total_tests * 100)
                    execution.progress = max(execution.progress, min(100, progress))
                self._notify_progress(execution)

    def cancel(self, execution_id: str) -> bool:
        execution = self.active.get(execution_id)
        return execution.cancel() if execution is not None else False

    async def execute_single_test(self, test_type: TestType, question: Question, models: List[str],
                                  config: Dict[str, Any]) -> List[BenchmarkResult]:
        return await self._executor(test_type).execute(question, models, config)

    def get_estimated_duration(self, suite: BenchmarkSuite) -> int:
        total = 0
        for test_type in suite.test_types:
            executor = self.executors.get(test_type)
            if executor is not None:
                total += executor.get_estimated_duration(len(suite.questions), len(suite.models))
        return total

    def get_required_models(self, suite: BenchmarkSuite) -> List[str]:
        required = []
        for test_type in suite.test_types:
            executor = self.executors.get(test_type)
            if executor is None:
                continue
            for model in executor.get_required_models():
                if model not in required:
                    required.append(model)
        return required

    def available_test_types(self) -> List[TestType]:
        return list(self.executors)
