from __future__ import annotations
from typing import Dict, Any, Optional
import time
from os import getenv

from openai import AsyncOpenAI
from openai import APIError, APITimeoutError

from .base import ModelProvider, ChatRequest, ModelResponse, ModelError, ModelTimeout

class OpenAIProvider(ModelProvider):
    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None, default_headers: Optional[Dict[str, str]] = None, timeout: float = 60.0, **kwargs):
        self.client = AsyncOpenAI(
            base_url=base_url,
            api_key=api_key or getenv("OPENAI_API_KEY"),
            default_headers=default_headers or {},
            timeout=timeout,
            **kwargs
        )
        self.base_url = base_url
        self.timeout = timeout

    async def chat(self, req: ChatRequest) -> ModelResponse:
        params = dict(req.params or {})

        completion_params = {
            "model": req.model,
            "messages": req.messages,
            **params
        }

        # Add extra_body if provided (useful for provider-specific parameters)
        if req.extra_body:
            completion_params["extra_body"] = req.extra_body

        t0 = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(**completion_params)
        except APITimeoutError as e:
            raise ModelTimeout(f"OpenAI timeout: {e}") from e
        except APIError as e:
            raise ModelError(f"OpenAI API error: {e}") from e
        except Exception as e:
            raise ModelError(f"OpenAI provider error: {e}") from e

        dt = time.perf_counter() - t0

        try:
            content = response.choices[0].message.content or ""
        except (IndexError, AttributeError) as e:
            raise ModelError(f"Invalid response structure from OpenAI API: {e}") from e

        meta = {
            "provider": "openai",
            "model": getattr(response, 'model', req.model),
            "latency": dt,
            "base_url": self.base_url or "https://api.openai.com/v1",
            "timeout": self.timeout
        }

        usage = getattr(response, 'usage', None)
        if usage:
            try:
                meta["usage"] = usage.model_dump()
            except AttributeError:
                meta["usage"] = {
                    "prompt_tokens": getattr(usage, 'prompt_tokens', None),
                    "completion_tokens": getattr(usage, 'completion_tokens', None),
                    "total_tokens": getattr(usage, 'total_tokens', None)
                }

        meta["finish_reason"] = getattr(response.choices[0], 'finish_reason', None)
        if hasattr(response, 'id'):
            meta["id"] = response.id

        return ModelResponse(content=content, raw=response, meta=meta)

    async def health_check(self) -> bool:
        try:
            await self.client.models.list()
            return True
        except Exception:
            return False

    async def cleanup(self) -> None:
        await self.client.close()
