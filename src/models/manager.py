from __future__ import annotations
from typing import Optional, Dict, Any, List, Union, Callable, Awaitable
from pathlib import Path
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from contextlib import asynccontextmanager
import asyncio
import os
import time
import logging

import yaml
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from .prompts import PromptManager
from .providers.base import ChatRequest, InvalidInput, GenerationFailed
from .providers.openai_sdk import OpenAIProvider

logger = logging.getLogger(__name__)

MAX_PROMPT_LENGTH = 30_000
HEALTH_CHECK_PROMPT = "Hello, this is a health check."
DEFAULT_TASK = "review"


class ConfigError(ValueError): ...


@dataclass
class BatchItem:
    index: int
    success: bool
    result: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-01T12:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ModelManager:
    def __init__(self, config_path: Union[Path, str], prompts_dir: Optional[Path] = None,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self.config_path = Path(config_path)
        self.config = self._load_config()
        self._providers = {}
        self._stats = {} #performance tracking
        self._sleep = sleep #backoff sleep, swapped out in tests

        if prompts_dir:
            self.prompts = PromptManager(prompts_dir)
        else:
            src_root = Path(__file__).parents[1]
            self.prompts = PromptManager(src_root / "prompts")

        self._check_api_keys()

    def _load_config(self) -> Dict:
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config not found: {self.config_path}")
        with open(self.config_path) as f:
            config = yaml.safe_load(f) or {}

        if 'providers' not in config:
            raise ConfigError("Config missing 'providers'")
        if 'tasks' not in config:
            raise ConfigError("Config missing 'tasks'")

        for task_name, task_cfg in config['tasks'].items():
            if 'provider' not in task_cfg:
                raise ConfigError(f"Task '{task_name}' missing provider")
            if 'model' not in task_cfg:
                raise ConfigError(f"Task '{task_name}' missing model")
            if task_cfg['provider'] not in config['providers']:
                raise ConfigError(f"Task '{task_name}' references unknown provider '{task_cfg['provider']}'")

        return config

    def _check_api_keys(self):
        for name, provider_cfg in self.config['providers'].items():
            env_name = provider_cfg.get('api_key_env')
            if env_name and not os.getenv(env_name):
                raise ConfigError(f"{env_name} environment variable is required (provider '{name}')")

    def _get_provider(self, provider_name: str):
        if provider_name in self._providers:
            return self._providers[provider_name]
        if provider_name not in self.config['providers']:
            raise ValueError(f"Unknown provider: {provider_name}")

        provider_cfg = self.config["providers"][provider_name]
        provider_type = provider_cfg["type"]
        settings = dict(provider_cfg.get("settings") or {})
        if provider_cfg.get('api_key_env'):
            settings["api_key"] = os.getenv(provider_cfg['api_key_env'])

        if provider_type == "openai":
            provider = OpenAIProvider(**settings)
        else:
            raise ValueError(f"Unknown provider type: {provider_type}")
        self._providers[provider_name] = provider
        logger.info(f"initialized provider: {provider_name}")
        return provider

    def _task_config(self, task: str) -> Dict[str, Any]:
        if task not in self.config["tasks"]:
            raise ValueError(f"Unknown task: {task}")
        return self.config["tasks"][task]

    def _messages(self, task_cfg: Dict[str, Any], prompt: str) -> List[Dict[str, str]]:
        messages = []
        prompt_ref = task_cfg.get("prompt_ref")
        if prompt_ref:
            messages.append({"role": "system", "content": self.prompts.render_system(prompt_ref)})
        messages.append({"role": "user", "content": prompt})
        return messages

    def _reject(self, message: str, prompt: Any) -> InvalidInput:
        prompt_length = len(prompt) if isinstance(prompt, str) else 0
        logger.error(
            f"Content generation failed: error={message} prompt_length={prompt_length} "
            f"timestamp={utc_timestamp()}"
        )
        return InvalidInput(message)

    async def generate(self, prompt: str, task: str = DEFAULT_TASK, **params_override) -> str:
        if not isinstance(prompt, str) or not prompt:
            raise self._reject("Prompt must be a non-empty string", prompt)
        if len(prompt) > MAX_PROMPT_LENGTH:
            raise self._reject(f"Prompt exceeds maximum length of {MAX_PROMPT_LENGTH:,} characters", prompt)

        start_time = time.perf_counter()
        try:
            task_cfg = self._task_config(task)
            request = ChatRequest(
                model=task_cfg["model"],
                messages=self._messages(task_cfg, prompt),
                params={**task_cfg.get("params", {}), **params_override},
            )
            provider = self._get_provider(task_cfg["provider"])
            response = await provider.chat(request)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self._track_stats(task, elapsed_ms, success=False)
            logger.error(
                f"Content generation failed: error={e} prompt_length={len(prompt)} "
                f"timestamp={utc_timestamp()}",
                exc_info=True,
            )
            raise GenerationFailed(f"AI content generation failed: {e}") from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        self._track_stats(task, elapsed_ms, success=True)
        logger.info(
            f"Content generation completed: prompt_length={len(prompt)} "
            f"response_length={len(response.content)} duration={elapsed_ms:.0f}ms "
            f"timestamp={utc_timestamp()}"
        )
        return response.content

    async def batch_generate(self, prompts: List[str], concurrency: int = 3, retry_attempts: int = 2,
                             task: str = DEFAULT_TASK) -> List[BatchItem]:
        """
        Run prompts through `generate` in windows of `concurrency` items.

        A window is awaited in full, failures included, before the next one starts.
        Each item gets `retry_attempts` retries with 2s, 4s, ... backoff.
        """
        if not isinstance(prompts, list) or not prompts:
            raise InvalidInput("Prompts must be a non-empty list")
        if concurrency < 1:
            raise InvalidInput("Concurrency must be at least 1")

        results: List[BatchItem] = []
        for start in range(0, len(prompts), concurrency):
            window = prompts[start:start + concurrency]
            results.extend(await asyncio.gather(*(
                self._generate_with_retry(prompt, start + offset, retry_attempts, task)
                for offset, prompt in enumerate(window)
            )))
        return results

    async def _generate_with_retry(self, prompt: str, index: int, retry_attempts: int, task: str) -> BatchItem:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(retry_attempts + 1),
            wait=wait_exponential(multiplier=2, exp_base=2),
            retry=retry_if_exception_type(Exception),
            sleep=self._sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    result = await self.generate(prompt, task=task)
        except Exception as e:
            logger.error(f"Failed to process prompt at index {index} after {retry_attempts} retries: {e}")
            return BatchItem(index=index, success=False, error=str(e))
        return BatchItem(index=index, success=True, result=result)

    async def health_check(self, task: str = DEFAULT_TASK) -> bool:
        try:
            result = await self.generate(HEALTH_CHECK_PROMPT, task=task)
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False
        return bool(result)

    def _track_stats(self, task: str, latency_ms: float, success: bool):
        if task not in self._stats:
            self._stats[task] = {
                'total_calls': 0,
                'successful_calls': 0,
                'total_latency_ms': 0
            }

        stats = self._stats[task]
        stats['total_calls'] += 1
        if success:
            stats['successful_calls'] += 1
            stats['total_latency_ms'] += latency_ms

    def get_stats(self, task: Optional[str] = None) -> Dict:
        if task:
            return self._stats.get(task, {})
        return self._stats

    async def cleanup(self):
        for name, provider in self._providers.items():
            try:
                await provider.cleanup()
                logger.info(f"Cleaned up provider: {name}")
            except Exception as e:
                logger.error(f"Cleanup failed for {name}: {e}")

        self._providers.clear()

    @asynccontextmanager
    async def session(self):
        try:
            yield self
        finally:
            await self.cleanup()
