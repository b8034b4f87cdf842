"""OpenAI-compatible chat completion backend — OpenAI, DeepSeek, GLM."""
import time
import logging
from ... import config, debug, prompts
from ...errors import MissingCredentialError, ProviderResponseError
from ..base import ProviderBackend

log = logging.getLogger(__name__)


class OpenAICompatibleBackend(ProviderBackend):
    """One chat-completions endpoint. The caller supplies the key on every call."""

    def __init__(self, name: str, url: str, model: str, transport=None):
        super().__init__(transport)
        self.name = name
        self.url = url
        self.model = model

    async def complete(self, prompt: str, key: str | None, language: str = "bn") -> str:
        """Return the first choice's message content.

        Raises MissingCredentialError before any I/O when ``key`` is empty,
        httpx errors on transport or HTTP failure, and ProviderResponseError
        when the body has no choices.
        """
        if not key:
            raise MissingCredentialError(f"No API key supplied for {self.name}", backend=self.name)

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": prompts.system_instruction(language)},
                {"role": "user", "content": prompt},
            ],
            "temperature": config.CHAT_TEMPERATURE,
        }
        headers = {
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }
        debug.log_provider_request(self.model, prompt)

        start = time.time()
        async with self._client(config.CHAT_TIMEOUT) as client:
            resp = await client.post(self.url, json=payload, headers=headers)
            resp.raise_for_status()
            data = resp.json()
        try:
            content = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderResponseError(f"{self.model} returned no choices", backend=self.name) from e

        debug.log_provider_response(self.model, content, (time.time() - start) * 1000)
        return content.strip()

    async def check_health(self) -> dict:
        # Keys arrive per request, so there is nothing to check without one
        return {"ok": True, "backend": self.name, "model": self.model, "url": self.url}


def openai_backend(transport=None) -> OpenAICompatibleBackend:
    return OpenAICompatibleBackend("openai", config.OPENAI_URL, config.OPENAI_MODEL, transport)


def deepseek_backend(transport=None) -> OpenAICompatibleBackend:
    return OpenAICompatibleBackend("deepseek", config.DEEPSEEK_URL, config.DEEPSEEK_MODEL, transport)


def glm_backend(transport=None) -> OpenAICompatibleBackend:
    return OpenAICompatibleBackend("glm", config.GLM_URL, config.GLM_MODEL, transport)
