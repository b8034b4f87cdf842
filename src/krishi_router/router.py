"""Provider router: picks the inference backend for a request and normalizes the answer.

Order of evaluation:
  1. Image priority: an image outside strategic mode goes to Qwen-VL first; a
     non-empty answer is returned as is.
  2. Provider dispatch on the caller's preference (unknown → Gemini).

route() never raises. Missing keys, transport errors and malformed payloads all
come back as a RouteResult carrying a localized message.
"""
import logging

from . import debug, prompts
from .errors import MissingCredentialError
from .providers import Backends, get_backends
from .types import CredentialSet, Provider, RouteRequest, RouteResult

log = logging.getLogger(__name__)

FAILED = "(Failed)"

QWEN_VL_SOURCE = "Qwen-VL 2.5 (HF Inference)"
QWEN_TEXT_SOURCE = "Qwen-7B (HuggingFace)"
OLLAMA_SOURCE = "Ollama (Local Host)"
GEMINI_MULTIMODAL_SOURCE = "Google Gemini (Grounded Multimodal)"
GEMINI_SEARCH_SOURCE = "Google Gemini (Search)"


def failed(label: str) -> str:
    return f"{label} {FAILED}"


class ProviderRouter:
    def __init__(self, backends: Backends | None = None):
        self._backends = backends

    @property
    def backends(self) -> Backends:
        return self._backends or get_backends()

    async def route(self, request: RouteRequest, credentials: CredentialSet | None = None) -> RouteResult:
        credentials = credentials or CredentialSet()
        provider = Provider.parse(request.provider)

        if request.image and not request.is_strategic:
            answer = await self._try_vision(request, credentials)
            if answer:
                debug.log_route("image priority", "Qwen-VL answered, short-circuit")
                return RouteResult(text=answer, source=QWEN_VL_SOURCE)
            debug.log_route("image priority", "Qwen-VL empty, falling through")

        debug.log_route("dispatch", provider.value)
        handler = {
            Provider.OPENAI: self._chat,
            Provider.DEEPSEEK: self._chat,
            Provider.GLM: self._chat,
            Provider.OLLAMA: self._ollama,
            Provider.QWEN_HF: self._qwen_text,
            Provider.GEMINI: self._gemini,
        }[provider]
        return await handler(provider, request, credentials)

    async def _try_vision(self, request: RouteRequest, credentials: CredentialSet) -> str | None:
        try:
            return await self.backends.huggingface.query_vision(
                request.prompt, request.image, request.language, token=credentials.hf_token,
            )
        except Exception as e:
            log.warning(f"Vision backend failed: {e}")
            return None

    async def _chat(self, provider: Provider, request: RouteRequest, credentials: CredentialSet) -> RouteResult:
        backend = self.backends.chat[provider]
        model = backend.model
        try:
            text = await backend.complete(request.prompt, credentials.key_for(provider), request.language)
        except MissingCredentialError:
            debug.log_route("missing credential", provider.value)
            return RouteResult(
                text=prompts.message("key_required", request.language, model=model.upper()),
                source=f"{model} (Key Required)",
            )
        except Exception as e:
            log.error(f"{model} request failed: {e}")
            debug.log("ERROR", f"{model} request failed: {e}")
            return RouteResult(
                text=prompts.message("connection_lost", request.language),
                source=failed(model),
            )
        return self._answer(text, f"{model.upper()} (Cloud API)", request.language)

    async def _ollama(self, provider: Provider, request: RouteRequest, credentials: CredentialSet) -> RouteResult:
        try:
            text = await self.backends.ollama.generate(request.prompt, credentials.ollama_endpoint, request.language)
        except Exception as e:
            log.error(f"Ollama request failed: {e}")
            debug.log("ERROR", f"Ollama request failed: {e}")
            return RouteResult(text=prompts.message("local_unreachable", request.language), source=failed("Ollama"))
        return self._answer(text, OLLAMA_SOURCE, request.language)

    async def _qwen_text(self, provider: Provider, request: RouteRequest, credentials: CredentialSet) -> RouteResult:
        try:
            text = await self.backends.huggingface.query_vision(
                request.prompt, None, request.language, token=credentials.hf_token,
            )
        except Exception as e:
            log.warning(f"Qwen text request failed: {e}")
            text = None
        return RouteResult(text=text or "Error", source=QWEN_TEXT_SOURCE)

    async def _gemini(self, provider: Provider, request: RouteRequest, credentials: CredentialSet) -> RouteResult:
        gemini = self.backends.gemini
        label = GEMINI_MULTIMODAL_SOURCE if request.image else GEMINI_SEARCH_SOURCE
        try:
            if request.image:
                analysis = await gemini.analyze_crop_image(
                    request.image, crop=request.crop, query=request.prompt,
                    language=request.language, api_key=credentials.gemini_key,
                )
                text = analysis.full_text
            else:
                result = await gemini.search_agricultural_info(
                    request.prompt, request.language, api_key=credentials.gemini_key,
                )
                text = result.text
        except MissingCredentialError:
            return RouteResult(
                text=prompts.message("key_required", request.language, model="GEMINI"),
                source=f"{label} (Key Required)",
            )
        except Exception as e:
            log.error(f"Gemini request failed: {e}")
            debug.log("ERROR", f"Gemini request failed: {e}")
            return RouteResult(text=prompts.message("backend_failed", request.language), source=failed(label))
        return self._answer(text, label, request.language)

    @staticmethod
    def _answer(text: str | None, source: str, language: str) -> RouteResult:
        """Empty answers are not errors; they get a generic low-confidence message."""
        if not text or not text.strip():
            debug.log_route("empty response", source)
            return RouteResult(text=prompts.message("empty_answer", language), source=source)
        return RouteResult(text=text, source=source)


_router = ProviderRouter()


async def route(request: RouteRequest, credentials: CredentialSet | None = None) -> RouteResult:
    """Route one request through the shared backends."""
    return await _router.route(request, credentials)
