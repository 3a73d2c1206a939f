from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from bench.errors import InvocationError
from bench.providers import Providers
from bench.question import ModelResponse

from .base import BaseLLMAdapter


class ModelInvoker(ABC):
    """Invoke model M with prompt P. Returns text + timing or raises InvocationError."""

    @abstractmethod
    async def invoke(self, model: str, prompt: str,
                     params: Optional[Dict[str, Any]] = None) -> ModelResponse:
        pass


class AdapterInvoker(ModelInvoker):
    def __init__(self, adapters: Dict[str, BaseLLMAdapter], providers: Optional[Providers] = None):
        self.adapters = adapters
        self.providers = providers or Providers()

    async def invoke(self, model: str, prompt: str,
                     params: Optional[Dict[str, Any]] = None) -> ModelResponse:
        adapter = self.adapters.get(model)
        if adapter is None:
            raise InvocationError(model, "no adapter configured")

        result = await adapter.complete(prompt, params)
        if not result.success:
            raise InvocationError(model, result.error or "empty response")

        usage = result.usage or {}
        token_count = usage.get('completion_tokens') or len(result.content) // 4
        temperature = (params or {}).get('temperature', adapter.temperature)
        return ModelResponse(
            id=self.providers.new_id(),
            model_name=model,
            response=result.content,
            response_time_ms=result.latency_ms,
            timestamp=self.providers.now(),
            token_count=token_count,
            temperature=temperature,
            metadata={'provider_model': result.model},
        )
