"""Ollama backend — local inference via the generate API."""
import time
import logging
from ... import config, debug, prompts
from ..base import ProviderBackend

log = logging.getLogger(__name__)


class OllamaBackend(ProviderBackend):
    name = "ollama"

    async def generate(self, prompt: str, endpoint: str | None = None, language: str = "bn") -> str:
        endpoint = (endpoint or config.OLLAMA_URL).rstrip("/")
        payload = {
            "model": config.OLLAMA_MODEL,
            "prompt": f"{prompts.system_instruction(language)}\n\nUser: {prompt}",
            "stream": False,
        }
        debug.log_provider_request("Ollama", prompt)

        start = time.time()
        async with self._client(config.OLLAMA_TIMEOUT) as client:
            resp = await client.post(f"{endpoint}/api/generate", json=payload)
            resp.raise_for_status()
            data = resp.json()
            response_text = (data.get("response") or "").strip()
            elapsed_ms = (time.time() - start) * 1000

            debug.log_provider_response("Ollama", response_text, elapsed_ms)
            log.debug(f"Ollama response ({data.get('total_duration', 0)/1e9:.1f}s): {response_text[:200]}")
            return response_text

    async def check_health(self, endpoint: str | None = None) -> dict:
        endpoint = (endpoint or config.OLLAMA_URL).rstrip("/")
        model = config.OLLAMA_MODEL
        try:
            async with self._client(5.0) as client:
                resp = await client.get(f"{endpoint}/api/tags")
                resp.raise_for_status()
                models = [m["name"] for m in resp.json().get("models", [])]
                has_model = any(model in m for m in models)
                return {"ok": True, "backend": "ollama", "models": models, "has_model": has_model, "target_model": model}
        except Exception as e:
            return {"ok": False, "backend": "ollama", "error": str(e)}
