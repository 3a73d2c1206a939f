from typing import Dict, Any, Optional

import httpx

from bench.errors import ConfigurationError

from .base import (
    BaseLLMAdapter,
    OpenAICompatibleAdapter,
    AnthropicAdapter,
    GoogleAdapter,
    DashScopeAdapter,
    MiniMaxAdapter,
    OllamaAdapter
)


class ModelFactory:
    PROVIDER_MAP = {
        'openai': OpenAICompatibleAdapter,
        'anthropic': AnthropicAdapter,
        'google': GoogleAdapter,
        'dashscope': DashScopeAdapter,
        'minimax': MiniMaxAdapter,
        'ollama': OllamaAdapter
    }
    KEYLESS_PROVIDERS = ('ollama',)

    @classmethod
    def create(cls, model_id: str, config: Dict[str, Any],
               transport: Optional[httpx.AsyncBaseTransport] = None) -> BaseLLMAdapter:
        provider = config.get('provider', 'openai')
        adapter_class = cls.PROVIDER_MAP.get(provider)

        if not adapter_class:
            raise ConfigurationError(f"Unknown provider for {model_id}: {provider}")

        config = dict(config)
        config.setdefault('model_name', model_id)
        return adapter_class(config, transport=transport)

    @classmethod
    def is_usable(cls, config: Dict[str, Any]) -> bool:
        if config.get('provider', 'openai') in cls.KEYLESS_PROVIDERS:
            return True
        return bool(config.get('api_key') and config.get('base_url'))

    @classmethod
    def create_all(cls, models_config: Dict[str, Dict[str, Any]],
                   transport: Optional[httpx.AsyncBaseTransport] = None) -> Dict[str, BaseLLMAdapter]:
        adapters = {}
        for model_id, config in models_config.items():
            config = config or {}
            if cls.is_usable(config):
                adapters[model_id] = cls.create(model_id, config, transport=transport)
        return adapters
