"""Gemini backend — grounded search and multimodal crop analysis over the REST API."""
import re
import time
import logging
from ... import config, debug, prompts
from ...errors import MissingCredentialError, ProviderResponseError
from ...images import mime_type_of, strip_data_url
from ...types import AnalysisResult, SearchResult
from ..base import ProviderBackend

log = logging.getLogger(__name__)

DEFAULT_DIAGNOSIS = "সায়েন্টিফিক অডিট সম্পন্ন"

_DIAGNOSIS_RE = re.compile(r"\[" + prompts.DIAGNOSIS_HEADER + r".*?\]:?\s*(.*)", re.IGNORECASE)


def _response_text(data: dict) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts).strip()


def _grounding_chunks(data: dict) -> list:
    candidates = data.get("candidates") or []
    if not candidates:
        return []
    return (candidates[0].get("groundingMetadata") or {}).get("groundingChunks") or []


def extract_diagnosis(text: str) -> str:
    """First line after the identification header, or a generic label."""
    match = _DIAGNOSIS_RE.search(text or "")
    if match:
        line = match.group(1).split("\n")[0].strip()
        if line:
            return line
    return DEFAULT_DIAGNOSIS


class GeminiBackend(ProviderBackend):
    name = "gemini"

    async def _generate(self, parts: list[dict], api_key: str | None, system: str | None = None,
                        search: bool = True) -> dict:
        api_key = api_key or config.GEMINI_API_KEY
        if not api_key:
            raise MissingCredentialError("GEMINI_API_KEY not set", backend=self.name)

        payload = {"contents": [{"role": "user", "parts": parts}]}
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        if search:
            payload["tools"] = [{"google_search": {}}]

        url = f"{config.GEMINI_URL}/models/{config.GEMINI_MODEL}:generateContent"
        async with self._client(config.GEMINI_TIMEOUT, headers={"x-goog-api-key": api_key}) as client:
            resp = await client.post(url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        if not isinstance(data, dict):
            raise ProviderResponseError("Unexpected Gemini response body", backend=self.name)
        return data

    async def analyze_crop_image(self, image: str, mime_type: str | None = None, crop: str | None = None,
                                 query: str | None = None, language: str = "bn", weather: dict | None = None,
                                 hint: str | None = None, api_key: str | None = None) -> AnalysisResult:
        text_prompt = prompts.crop_analysis_prompt(crop, query, weather=weather, hint=hint)
        parts = [
            {"inline_data": {"mime_type": mime_type or mime_type_of(image), "data": strip_data_url(image)}},
            {"text": text_prompt},
        ]
        debug.log_provider_request("Gemini multimodal", text_prompt, has_image=True)

        start = time.time()
        data = await self._generate(parts, api_key, system=prompts.grounding_instruction(language))
        text = _response_text(data)
        debug.log_provider_response("Gemini multimodal", text, (time.time() - start) * 1000)

        return AnalysisResult(
            diagnosis=extract_diagnosis(text),
            full_text=text,
            grounding_chunks=_grounding_chunks(data),
        )

    async def search_agricultural_info(self, query: str, language: str = "bn",
                                       api_key: str | None = None) -> SearchResult:
        text_prompt = f"{query}. Language: {prompts.language_name(language)}."
        debug.log_provider_request("Gemini search", text_prompt)

        start = time.time()
        data = await self._generate([{"text": text_prompt}], api_key)
        text = _response_text(data)
        debug.log_provider_response("Gemini search", text, (time.time() - start) * 1000)
        return SearchResult(text=text, grounding_chunks=_grounding_chunks(data))

    async def check_health(self) -> dict:
        if not config.GEMINI_API_KEY:
            return {"ok": False, "backend": "gemini", "error": "GEMINI_API_KEY not set"}
        return {"ok": True, "backend": "gemini", "model": config.GEMINI_MODEL}
