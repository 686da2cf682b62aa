from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Any, Optional, List

#unified model errors
class ModelError(RuntimeError): ...
class ModelTimeout(ModelError): ...
class InvalidInput(ModelError): ...
class GenerationFailed(ModelError): ...

@dataclass(frozen=True)
class ChatRequest:
    model: str
    messages: List[Dict[str, Any]]
    params: Dict[str, Any] | None = None
    extra_body: Optional[Dict[str, Any]] = None #provider specific args passed through untouched

@dataclass(frozen=True)
class ModelResponse:
    content: str
    raw: Any #provider-native response obj/dict
    meta: Dict[str, Any] #timings, token counts, model, created, etc.

class ModelProvider(ABC):
    @abstractmethod
    async def chat(self, req: ChatRequest) -> ModelResponse:
        raise NotImplementedError

    @abstractmethod
    async def health_check(self) -> bool:
        raise NotImplementedError

    async def cleanup(self) -> None:
        return None
