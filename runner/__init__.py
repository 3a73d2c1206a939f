from .base import TestExecutor
from .orchestrator import BenchmarkOrchestrator, default_executors

__all__ = ['TestExecutor', 'BenchmarkOrchestrator', 'default_executors']
