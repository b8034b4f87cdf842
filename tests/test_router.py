"""Routing policy tests: image priority, strategic mode, keyed providers, default branch."""
import base64

import httpx
import pytest

IMAGE_RAW = base64.b64encode(b"\xff\xd8\xff\xe0 fake jpeg").decode()
IMAGE_URL = f"data:image/jpeg;base64,{IMAGE_RAW}"


def _gemini_reply(text: str) -> httpx.Response:
    return httpx.Response(200, json={
        "candidates": [{
            "content": {"parts": [{"text": text}]},
            "groundingMetadata": {"groundingChunks": [{"web": {"uri": "https://dae.gov.bd"}}]},
        }],
    })


def _make_router(recorder):
    from src.krishi_router.providers import Backends
    from src.krishi_router.router import ProviderRouter

    return ProviderRouter(Backends.create(transport=recorder.transport))


@pytest.mark.asyncio
async def test_image_priority_returns_vision_answer_verbatim(recorder):
    from src.krishi_router.router import QWEN_VL_SOURCE
    from src.krishi_router.types import CredentialSet, RouteRequest

    recorder.responder = lambda request: httpx.Response(
        200, json=[{"generated_text": "<|im_start|>[শনাক্তকরণ]: Rice blast<|im_end|>"}]
    )
    router = _make_router(recorder)

    result = await router.route(
        RouteRequest(prompt="What is wrong with this leaf?", image=IMAGE_URL, provider="openai"),
        CredentialSet(huggingface="hf-test", openai="sk-test"),
    )

    assert result.text == "[শনাক্তকরণ]: Rice blast"
    assert result.source == QWEN_VL_SOURCE
    assert len(recorder.requests) == 1
    assert len(recorder.calls_to("Qwen2.5-VL")) == 1


@pytest.mark.asyncio
async def test_image_priority_sends_image_as_data_url(recorder):
    from src.krishi_router.types import CredentialSet, RouteRequest

    recorder.responder = lambda request: httpx.Response(200, json={"generated_text": "ok"})
    router = _make_router(recorder)

    await router.route(RouteRequest(prompt="leaf spots", image=IMAGE_RAW), CredentialSet(huggingface="hf-test"))

    body = recorder.body(recorder.requests[0])
    assert body["inputs"]["image"] == IMAGE_URL
    assert "leaf spots" in body["inputs"]["prompt"]
    assert recorder.requests[0].headers["Authorization"] == "Bearer hf-test"
    assert recorder.requests[0].headers["x-wait-for-model"] == "true"


@pytest.mark.asyncio
async def test_strategic_mode_skips_vision_backend(recorder):
    from src.krishi_router.router import GEMINI_MULTIMODAL_SOURCE
    from src.krishi_router.types import CredentialSet, RouteRequest

    recorder.responder = lambda request: _gemini_reply("[শনাক্তকরণ]: Sheath blight")
    router = _make_router(recorder)

    result = await router.route(
        RouteRequest(prompt="diagnose", image=IMAGE_URL, strategy="strategic", crop="rice"),
        CredentialSet(huggingface="hf-test", gemini="g-test"),
    )

    assert recorder.calls_to("Qwen2.5-VL") == []
    assert len(recorder.calls_to("generateContent")) == 1
    assert result.source == GEMINI_MULTIMODAL_SOURCE
    assert result.text == "[শনাক্তকরণ]: Sheath blight"


@pytest.mark.asyncio
async def test_empty_vision_answer_falls_through_to_dispatch(recorder):
    from src.krishi_router.router import GEMINI_MULTIMODAL_SOURCE
    from src.krishi_router.types import CredentialSet, RouteRequest

    def responder(request):
        if "Qwen2.5-VL" in str(request.url):
            return httpx.Response(200, json=[{"generated_text": "<|im_end|>   "}])
        return _gemini_reply("Gemini answer")

    recorder.responder = responder
    router = _make_router(recorder)

    result = await router.route(
        RouteRequest(prompt="diagnose", image=IMAGE_URL),
        CredentialSet(huggingface="hf-test", gemini="g-test"),
    )

    assert len(recorder.requests) == 2
    assert result.source == GEMINI_MULTIMODAL_SOURCE
    assert result.text == "Gemini answer"


@pytest.mark.parametrize("failure", ["connect", "503"])
@pytest.mark.asyncio
async def test_failed_vision_call_falls_through_to_dispatch(recorder, failure):
    from src.krishi_router.router import GEMINI_MULTIMODAL_SOURCE
    from src.krishi_router.types import CredentialSet, RouteRequest

    def responder(request):
        if "Qwen2.5-VL" in str(request.url):
            if failure == "connect":
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(503, json={"error": "Model is currently loading"})
        return _gemini_reply("Gemini answer")

    recorder.responder = responder
    router = _make_router(recorder)

    result = await router.route(
        RouteRequest(prompt="diagnose", image=IMAGE_URL),
        CredentialSet(huggingface="hf-test", gemini="g-test"),
    )

    assert len(recorder.calls_to("Qwen2.5-VL")) == 1
    assert len(recorder.calls_to("generateContent")) == 1
    assert result.source == GEMINI_MULTIMODAL_SOURCE
    assert result.text == "Gemini answer"


@pytest.mark.asyncio
async def test_vision_without_token_is_skipped_silently(recorder):
    from src.krishi_router.types import CredentialSet, RouteRequest

    recorder.responder = lambda request: _gemini_reply("Gemini answer")
    router = _make_router(recorder)

    result = await router.route(RouteRequest(prompt="diagnose", image=IMAGE_URL), CredentialSet(gemini="g-test"))

    assert recorder.calls_to("Qwen2.5-VL") == []
    assert result.text == "Gemini answer"


@pytest.mark.asyncio
@pytest.mark.parametrize("provider,model", [("openai", "gpt-4o-mini"), ("deepseek", "deepseek-chat"), ("glm", "glm-4")])
async def test_keyed_provider_without_key_makes_no_network_call(recorder, provider, model):
    from src.krishi_router.types import CredentialSet, RouteRequest

    router = _make_router(recorder)

    result = await router.route(RouteRequest(prompt="rice blast control", provider=provider), CredentialSet())

    assert recorder.requests == []
    assert result.source == f"{model} (Key Required)"
    assert model.upper() in result.text
    assert "API Key" in result.text


@pytest.mark.asyncio
@pytest.mark.parametrize("provider,model", [("openai", "gpt-4o-mini"), ("deepseek", "deepseek-chat"), ("glm", "glm-4")])
async def test_keyed_provider_transport_failure_is_marked_failed(recorder, provider, model):
    from src.krishi_router.types import CredentialSet, RouteRequest

    def responder(request):
        raise httpx.ConnectError("connection refused", request=request)

    recorder.responder = responder
    router = _make_router(recorder)

    result = await router.route(
        RouteRequest(prompt="rice blast control", provider=provider, language="en"),
        CredentialSet.from_mapping({provider: "sk-test"}),
    )

    assert len(recorder.requests) == 1
    assert result.source == f"{model} (Failed)"
    assert result.text == "Connection lost. Please check that your API key is correct."


@pytest.mark.asyncio
async def test_keyed_provider_http_error_is_marked_failed(recorder):
    from src.krishi_router.types import CredentialSet, RouteRequest

    recorder.responder = lambda request: httpx.Response(401, json={"error": "invalid key"})
    router = _make_router(recorder)

    result = await router.route(RouteRequest(prompt="q", provider="openai"), CredentialSet(openai="sk-bad"))

    assert result.source.endswith("(Failed)")
    assert result.text


@pytest.mark.asyncio
async def test_keyed_provider_success_payload(recorder):
    from src.krishi_router.types import CredentialSet, RouteRequest

    recorder.responder = lambda request: httpx.Response(
        200, json={"choices": [{"message": {"role": "assistant", "content": "Use tricyclazole."}}]}
    )
    router = _make_router(recorder)

    result = await router.route(RouteRequest(prompt="rice blast control", provider="deepseek"), CredentialSet(deepseek="sk-ds"))

    assert result.text == "Use tricyclazole."
    assert result.source == "DEEPSEEK-CHAT (Cloud API)"
    request = recorder.requests[0]
    assert str(request.url) == "https://api.deepseek.com/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-ds"
    body = recorder.body(request)
    assert body["model"] == "deepseek-chat"
    assert body["temperature"] == 0.2
    assert [m["role"] for m in body["messages"]] == ["system", "user"]
    assert body["messages"][1]["content"] == "rice blast control"
    assert "Senior Scientific Officer" in body["messages"][0]["content"]


@pytest.mark.asyncio
async def test_keyed_provider_empty_answer_gets_low_confidence_message(recorder):
    from src.krishi_router.types import CredentialSet, RouteRequest

    recorder.responder = lambda request: httpx.Response(200, json={"choices": [{"message": {"content": ""}}]})
    router = _make_router(recorder)

    result = await router.route(RouteRequest(prompt="q", provider="glm", language="en"), CredentialSet(glm="k"))

    assert result.source == "GLM-4 (Cloud API)"
    assert result.text.startswith("No confident answer")


@pytest.mark.asyncio
async def test_ollama_uses_caller_endpoint_and_prefixes_system_instruction(recorder):
    from src.krishi_router.router import OLLAMA_SOURCE
    from src.krishi_router.types import CredentialSet, RouteRequest

    recorder.responder = lambda request: httpx.Response(200, json={"response": "Apply potash."})
    router = _make_router(recorder)

    result = await router.route(
        RouteRequest(prompt="yellow leaves", provider="ollama"),
        CredentialSet.from_mapping({"ollamaEndpoint": "http://farm-pc:11434/"}),
    )

    assert result == type(result)(text="Apply potash.", source=OLLAMA_SOURCE)
    request = recorder.requests[0]
    assert str(request.url) == "http://farm-pc:11434/api/generate"
    body = recorder.body(request)
    assert body["model"] == "llama3"
    assert body["stream"] is False
    assert body["prompt"].endswith("\n\nUser: yellow leaves")
    assert body["prompt"].startswith("Role: Senior Scientific Officer")


@pytest.mark.asyncio
async def test_ollama_unreachable_returns_localized_message(recorder):
    from src.krishi_router.types import CredentialSet, RouteRequest

    def responder(request):
        raise httpx.ConnectError("no route", request=request)

    recorder.responder = responder
    router = _make_router(recorder)

    result = await router.route(RouteRequest(prompt="q", provider="ollama"), CredentialSet())

    assert result.source == "Ollama (Failed)"
    assert "Ollama" in result.text


@pytest.mark.asyncio
async def test_qwen_text_only_substitutes_error_label(recorder):
    from src.krishi_router.router import QWEN_TEXT_SOURCE
    from src.krishi_router.types import CredentialSet, RouteRequest

    recorder.responder = lambda request: httpx.Response(503, json={"error": "loading"})
    router = _make_router(recorder)

    result = await router.route(RouteRequest(prompt="q", provider="qwen_hf"), CredentialSet(huggingface="hf-test"))

    assert result.text == "Error"
    assert result.source == QWEN_TEXT_SOURCE
    assert "inputs" in recorder.body(recorder.requests[0])
    assert isinstance(recorder.body(recorder.requests[0])["inputs"], str)


@pytest.mark.asyncio
async def test_default_without_image_uses_search_backend(recorder):
    from src.krishi_router.router import GEMINI_SEARCH_SOURCE
    from src.krishi_router.types import CredentialSet, RouteRequest

    recorder.responder = lambda request: _gemini_reply("Spray tricyclazole 75 WP.")
    router = _make_router(recorder)

    result = await router.route(RouteRequest(prompt="rice blast control"), CredentialSet(gemini="g-test"))

    assert result.source == GEMINI_SEARCH_SOURCE
    assert result.text == "Spray tricyclazole 75 WP."
    body = recorder.body(recorder.requests[0])
    assert body["tools"] == [{"google_search": {}}]
    assert body["contents"][0]["parts"][0]["text"].startswith("rice blast control")
    assert recorder.requests[0].headers["x-goog-api-key"] == "g-test"


@pytest.mark.asyncio
async def test_default_with_image_sends_image_prompt_and_crop(recorder):
    from src.krishi_router.types import CredentialSet, RouteRequest

    recorder.responder = lambda request: _gemini_reply("[শনাক্তকরণ]: Brown spot\n[প্রতিকার]: ...")
    router = _make_router(recorder)

    await router.route(
        RouteRequest(prompt="brown lesions on leaves", image=IMAGE_URL, strategy="strategic", crop="rice"),
        CredentialSet(gemini="g-test"),
    )

    body = recorder.body(recorder.calls_to("generateContent")[0])
    parts = body["contents"][0]["parts"]
    assert parts[0]["inline_data"] == {"mime_type": "image/jpeg", "data": IMAGE_RAW}
    assert "brown lesions on leaves" in parts[1]["text"]
    assert "Crop rice" in parts[1]["text"]
    assert "systemInstruction" in body


@pytest.mark.asyncio
async def test_unknown_provider_uses_default_branch(recorder):
    from src.krishi_router.router import GEMINI_SEARCH_SOURCE
    from src.krishi_router.types import CredentialSet, RouteRequest

    recorder.responder = lambda request: _gemini_reply("answer")
    router = _make_router(recorder)

    result = await router.route(RouteRequest(prompt="q", provider="mystery-llm"), CredentialSet(gemini="g-test"))

    assert result.source == GEMINI_SEARCH_SOURCE


@pytest.mark.asyncio
async def test_default_without_gemini_key_reports_missing_key(recorder):
    from src.krishi_router.types import CredentialSet, RouteRequest

    router = _make_router(recorder)

    result = await router.route(RouteRequest(prompt="q"), CredentialSet())

    assert recorder.requests == []
    assert result.source.endswith("(Key Required)")
    assert "GEMINI" in result.text


@pytest.mark.asyncio
async def test_default_failure_never_raises(recorder):
    from src.krishi_router.types import CredentialSet, RouteRequest

    recorder.responder = lambda request: httpx.Response(500, text="internal")
    router = _make_router(recorder)

    result = await router.route(RouteRequest(prompt="q", language="en"), CredentialSet(gemini="g-test"))

    assert result.source == "Google Gemini (Search) (Failed)"
    assert result.text == "No answer from the analysis service. Please try again shortly."


@pytest.mark.asyncio
async def test_unknown_language_falls_back_to_bangla_messages(recorder):
    from src.krishi_router.prompts import MESSAGES
    from src.krishi_router.types import CredentialSet, RouteRequest

    router = _make_router(recorder)

    result = await router.route(RouteRequest(prompt="q", provider="openai", language="fr"), CredentialSet())

    assert result.text == MESSAGES["bn"]["key_required"].format(model="GPT-4O-MINI")


@pytest.mark.asyncio
async def test_module_level_route_uses_shared_backends(recorder, monkeypatch):
    from src.krishi_router import router as router_mod
    from src.krishi_router.providers import Backends
    from src.krishi_router.types import RouteRequest

    backends = Backends.create(transport=recorder.transport)
    monkeypatch.setattr(router_mod, "get_backends", lambda: backends)

    result = await router_mod.route(RouteRequest(prompt="q", provider="deepseek"))

    assert result.source == "deepseek-chat (Key Required)"
    assert recorder.requests == []
