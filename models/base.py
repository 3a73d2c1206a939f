from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any, Tuple
import httpx
import time


@dataclass
class LLMResponse:
    content: str
    model: str
    latency_ms: int
    usage: Optional[Dict[str, int]] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.content != ''


class BaseLLMAdapter(ABC):
    """One provider endpoint. ``complete`` makes a single HTTP attempt and never raises."""

    def __init__(self, config: Dict[str, Any], transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = config.get('base_url', '')
        self.api_key = config.get('api_key', '')
        self.model_name = config.get('model_name', '')
        self.timeout = config.get('timeout', 120)
        self.temperature = config.get('temperature', 0.7)
        self.max_tokens = config.get('max_tokens', 1024)
        self.extra_body = config.get('extra_body') or {}
        self.transport = transport

    @abstractmethod
    def _endpoint(self) -> str:
        pass

    @abstractmethod
    def _build_request_body(self, prompt: str, params: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def _extract(self, response: Dict[str, Any]) -> Tuple[str, Dict[str, int]]:
        """Return (content, usage); raise KeyError/IndexError on an unexpected shape."""

    def _get_headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    async def complete(self, prompt: str, params: Optional[Dict[str, Any]] = None) -> LLMResponse:
        body = self._build_request_body(prompt, self._sampling(params))
        start_time = time.time()
        try:
            response = await self._make_request(self._endpoint(), self._get_headers(), body)
        except (httpx.HTTPError, ValueError) as e:
            return self._failure(str(e) or repr(e), start_time)
        return self._parse_response(response, int((time.time() - start_time) * 1000))

    def _sampling(self, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """Adapter defaults overridden by per-call params; unknown keys go to ``extra``."""
        params = dict(params or {})
        resolved = {
            'temperature': params.pop('temperature', None),
            'max_tokens': params.pop('max_tokens', None),
            'seed': params.pop('seed', None),
        }
        if resolved['temperature'] is None:
            resolved['temperature'] = self.temperature
        if resolved['max_tokens'] is None:
            resolved['max_tokens'] = self.max_tokens
        resolved['extra'] = params
        return resolved

    def _parse_response(self, response: Dict[str, Any], latency_ms: int) -> LLMResponse:
        try:
            content, usage = self._extract(response)
        except (KeyError, IndexError, TypeError) as e:
            return LLMResponse(content="", model=self.model_name, latency_ms=latency_ms,
                               error=f"Parse error: {e}")
        return LLMResponse(content=content, model=self.model_name, latency_ms=latency_ms, usage=usage)

    def _failure(self, message: str, start_time: float) -> LLMResponse:
        return LLMResponse(
            content="",
            model=self.model_name,
            latency_ms=int((time.time() - start_time) * 1000),
            error=message,
        )

    async def _make_request(self, url: str, headers: Dict[str, str],
                            body: Dict[str, Any]) -> Dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(url, headers=headers, json=body)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            text = response.text
            snippet = (text[:800] + "...") if len(text) > 800 else text
            raise httpx.HTTPStatusError(
                f"{e} | status={response.status_code} | body={snippet}",
                request=e.request,
                response=e.response,
            ) from None

        return response.json()


class OpenAICompatibleAdapter(BaseLLMAdapter):
    def _endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}"
        }

    def _build_request_body(self, prompt: str, params: Dict[str, Any]) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": self.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": params['temperature'],
            "max_tokens": params['max_tokens']
        }
        if params['seed'] is not None:
            body["seed"] = params['seed']
        body.update(params['extra'])
        if isinstance(self.extra_body, dict):
            body.update(self.extra_body)
        return body

    def _extract(self, response: Dict[str, Any]) -> Tuple[str, Dict[str, int]]:
        msg = response["choices"][0]["message"]
        # reasoning variants may put the answer in a separate field
        content = msg.get("content") or msg.get("reasoning_content") or msg.get("reasoning") or ""
        return content, response.get("usage") or {}


class AnthropicAdapter(BaseLLMAdapter):
    def _endpoint(self) -> str:
        return f"{self.base_url}/messages"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01"
        }

    def _build_request_body(self, prompt: str, params: Dict[str, Any]) -> Dict[str, Any]:
        body = {
            "model": self.model_name,
            "max_tokens": params['max_tokens'],
            "messages": [{"role": "user", "content": prompt}],
            "temperature": params['temperature']
        }
        for key in ('top_p', 'top_k'):
            if key in params['extra']:
                body[key] = params['extra'][key]
        return body

    def _extract(self, response: Dict[str, Any]) -> Tuple[str, Dict[str, int]]:
        usage = response.get("usage", {})
        return response["content"][0]["text"], {
            "prompt_tokens": usage.get("input_tokens", 0),
            "completion_tokens": usage.get("output_tokens", 0)
        }


class GoogleAdapter(BaseLLMAdapter):
    def _endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model_name}:generateContent?key={self.api_key}"

    def _build_request_body(self, prompt: str, params: Dict[str, Any]) -> Dict[str, Any]:
        generation_config = {
            "temperature": params['temperature'],
            "maxOutputTokens": params['max_tokens']
        }
        if params['seed'] is not None:
            generation_config["seed"] = params['seed']
        if 'top_p' in params['extra']:
            generation_config["topP"] = params['extra']['top_p']
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": generation_config
        }

    def _extract(self, response: Dict[str, Any]) -> Tuple[str, Dict[str, int]]:
        usage = response.get("usageMetadata", {})
        return response["candidates"][0]["content"]["parts"][0]["text"], {
            "prompt_tokens": usage.get("promptTokenCount", 0),
            "completion_tokens": usage.get("candidatesTokenCount", 0)
        }


class DashScopeAdapter(BaseLLMAdapter):
    def _endpoint(self) -> str:
        return f"{self.base_url}/services/aigc/text-generation/generation"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}"
        }

    def _build_request_body(self, prompt: str, params: Dict[str, Any]) -> Dict[str, Any]:
        parameters = {
            "temperature": params['temperature'],
            "max_tokens": params['max_tokens']
        }
        if params['seed'] is not None:
            parameters["seed"] = params['seed']
        parameters.update(params['extra'])
        return {
            "model": self.model_name,
            "input": {"messages": [{"role": "user", "content": prompt}]},
            "parameters": parameters
        }

    def _extract(self, response: Dict[str, Any]) -> Tuple[str, Dict[str, int]]:
        usage = response.get("usage", {})
        return response["output"]["text"], {
            "prompt_tokens": usage.get("input_tokens", 0),
            "completion_tokens": usage.get("output_tokens", 0)
        }


class MiniMaxAdapter(OpenAICompatibleAdapter):
    pass


class OllamaAdapter(BaseLLMAdapter):
    """Local Ollama server, ``/api/generate`` without streaming."""

    DEFAULT_BASE_URL = 'http://localhost:11434'

    def _endpoint(self) -> str:
        return f"{self.base_url or self.DEFAULT_BASE_URL}/api/generate"

    def _build_request_body(self, prompt: str, params: Dict[str, Any]) -> Dict[str, Any]:
        options = {
            "temperature": params['temperature'],
            "num_predict": params['max_tokens']
        }
        if params['seed'] is not None:
            options["seed"] = params['seed']
        options.update(params['extra'])
        return {
            "model": self.model_name,
            "prompt": prompt,
            "stream": False,
            "options": options
        }

    def _extract(self, response: Dict[str, Any]) -> Tuple[str, Dict[str, int]]:
        if "response" not in response and response.get("error"):
            raise KeyError(response["error"])
        return response["response"], {
            "prompt_tokens": response.get("prompt_eval_count", 0),
            "completion_tokens": response.get("eval_count", 0)
        }
