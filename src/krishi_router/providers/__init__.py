"""Provider backends: one instance of each, shared by every routing call.

Backends hold no per-request state, so a single set is created lazily and reused.
"""
from dataclasses import dataclass, field

from ..types import Provider
from .base import ProviderBackend
from .backends.gemini import GeminiBackend
from .backends.huggingface import HuggingFaceBackend
from .backends.ollama import OllamaBackend
from .backends.openai_compat import OpenAICompatibleBackend, deepseek_backend, glm_backend, openai_backend


@dataclass
class Backends:
    huggingface: HuggingFaceBackend
    ollama: OllamaBackend
    gemini: GeminiBackend
    chat: dict[Provider, OpenAICompatibleBackend] = field(default_factory=dict)

    @classmethod
    def create(cls, transport=None) -> "Backends":
        return cls(
            huggingface=HuggingFaceBackend(transport),
            ollama=OllamaBackend(transport),
            gemini=GeminiBackend(transport),
            chat={
                Provider.OPENAI: openai_backend(transport),
                Provider.DEEPSEEK: deepseek_backend(transport),
                Provider.GLM: glm_backend(transport),
            },
        )

    async def check_health(self) -> dict:
        result = {
            "huggingface": await self.huggingface.check_health(),
            "ollama": await self.ollama.check_health(),
            "gemini": await self.gemini.check_health(),
        }
        for provider, backend in self.chat.items():
            result[provider.value] = await backend.check_health()
        return result


_backends: Backends | None = None


def get_backends() -> Backends:
    global _backends
    if _backends is None:
        _backends = Backends.create()
    return _backends


__all__ = [
    "Backends",
    "GeminiBackend",
    "HuggingFaceBackend",
    "OllamaBackend",
    "OpenAICompatibleBackend",
    "ProviderBackend",
    "get_backends",
]
