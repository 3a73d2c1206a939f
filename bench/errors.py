class BenchmarkError(Exception):
    pass


class ConfigurationError(BenchmarkError):
    """Invalid suite or test-type configuration. Raised before any model call."""
    pass


class InvocationError(BenchmarkError):
    def __init__(self, model_name: str, message: str):
        super().__init__(f"Failed to call model {model_name}: {message}")
        self.model_name = model_name
        self.reason = message


class InvocationTimeoutError(InvocationError):
    def __init__(self, model_name: str, timeout_ms: int):
        super().__init__(model_name, f"timeout after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class AggregationError(BenchmarkError):
    """Nothing to analyse: every sample for a model failed."""
    pass
