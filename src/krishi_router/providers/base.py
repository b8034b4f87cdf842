"""Abstract base class for provider backends."""
from abc import ABC, abstractmethod

import httpx


class ProviderBackend(ABC):
    """Interface for all inference backends (huggingface, openai-compatible, ollama, gemini)."""

    name: str = ""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        # Tests inject an httpx.MockTransport here
        self._transport = transport

    def _client(self, timeout: float, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport, **kwargs)

    @abstractmethod
    async def check_health(self) -> dict:
        """Check if the backend is configured and reachable."""
        ...
