from .base import BaseLLMAdapter, LLMResponse
from .factory import ModelFactory
from .invoker import AdapterInvoker, ModelInvoker

__all__ = ['BaseLLMAdapter', 'LLMResponse', 'ModelFactory', 'ModelInvoker', 'AdapterInvoker']
