"""Hugging Face inference backend — Qwen2.5-VL triage plus auxiliary crop models."""
import re
import time
import httpx
import logging
from ... import config, debug, prompts
from ...images import decode_image, ensure_data_url
from ...types import DiseaseScore
from ..base import ProviderBackend

log = logging.getLogger(__name__)

_SPECIAL_TOKEN_RE = re.compile(r"<\|.*?\|>")


def _generated_text(result) -> str:
    """HF text endpoints answer with either a list of generations or a single object."""
    if isinstance(result, list):
        result = result[0] if result else {}
    if not isinstance(result, dict):
        return ""
    return result.get("generated_text") or result.get("text") or ""


class HuggingFaceBackend(ProviderBackend):
    name = "huggingface"

    def _headers(self, token: str, content_type: str = "application/json") -> dict:
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": content_type,
            "x-wait-for-model": "true",
        }

    async def query_vision(self, prompt: str, image: str | None = None, language: str = "bn",
                           token: str | None = None) -> str | None:
        """Ask Qwen2.5-VL. Returns None on any failure or blank answer, never raises."""
        token = token or config.HF_TOKEN
        if not token:
            log.debug("HF_TOKEN not set, skipping Qwen-VL")
            return None

        grounded = prompts.audit_prompt(prompt, language)
        body = {
            "inputs": {"image": ensure_data_url(image), "prompt": grounded} if image else grounded,
            "parameters": {"max_new_tokens": 1024, "temperature": 0.1},
        }
        debug.log_provider_request("Qwen-VL", grounded, has_image=bool(image))

        start = time.time()
        try:
            async with self._client(config.HF_TIMEOUT) as client:
                resp = await client.post(
                    f"{config.HF_INFERENCE_URL}/{config.HF_VISION_MODEL}",
                    json=body,
                    headers=self._headers(token),
                )
                if not resp.is_success:
                    log.warning(f"Qwen-VL returned HTTP {resp.status_code}")
                    return None
                text = _generated_text(resp.json())
        except (httpx.HTTPError, ValueError) as e:
            log.warning(f"Qwen-VL request failed: {e}")
            return None

        text = _SPECIAL_TOKEN_RE.sub("", text).strip()
        debug.log_provider_response("Qwen-VL", text, (time.time() - start) * 1000)
        return text or None

    async def weather_risk_insight(self, weather: dict, language: str = "bn",
                                   token: str | None = None) -> str | None:
        """Pest/disease surge risk for the given temperature and humidity."""
        token = token or config.HF_TOKEN
        if not token:
            return None
        prompt = prompts.weather_risk_prompt(weather, language)
        try:
            async with self._client(config.HF_TIMEOUT) as client:
                resp = await client.post(
                    f"{config.HF_INFERENCE_URL}/{config.HF_INSIGHT_MODEL}",
                    json={"inputs": prompt},
                    headers=self._headers(token),
                )
                if not resp.is_success:
                    return None
                text = _generated_text(resp.json())
        except (httpx.HTTPError, ValueError) as e:
            log.warning(f"Weather insight request failed: {e}")
            return None
        return text.split("[/INST]")[-1].strip() or None

    async def classify_plant_disease(self, image: str, token: str | None = None) -> list[DiseaseScore] | None:
        """Top 5 disease labels for a leaf image, best first."""
        token = token or config.HF_TOKEN
        if not token or not image:
            return None
        try:
            payload = decode_image(image)
        except ValueError as e:
            log.warning(f"Could not decode image for classification: {e}")
            return None
        try:
            async with self._client(config.HF_TIMEOUT) as client:
                resp = await client.post(
                    f"{config.HF_INFERENCE_URL}/{config.HF_CLASSIFIER_MODEL}",
                    content=payload,
                    headers=self._headers(token, "application/octet-stream"),
                )
                if not resp.is_success:
                    return None
                result = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            log.warning(f"Plant disease classification failed: {e}")
            return None
        if not isinstance(result, list):
            return None
        scores = [DiseaseScore(label=r.get("label", ""), score=float(r.get("score", 0.0))) for r in result]
        scores.sort(key=lambda s: s.score, reverse=True)
        return scores[:5]

    async def check_health(self) -> dict:
        if not config.HF_TOKEN:
            return {"ok": False, "backend": "huggingface", "error": "HF_TOKEN not set"}
        return {"ok": True, "backend": "huggingface", "model": config.HF_VISION_MODEL}
