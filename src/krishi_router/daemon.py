"""HTTP daemon exposing the router and report store to the web client."""
import asyncio
import logging
import os
import time
from aiohttp import web

from . import config, debug
from .router import ProviderRouter
from .storage import ReportStore, get_store
from .types import CredentialSet, RouteRequest

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
log = logging.getLogger(__name__)

ROUTER_KEY = web.AppKey("router", ProviderRouter)
STORE_KEY = web.AppKey("store", ReportStore)


async def _parse_body(request: web.Request) -> dict:
    if not request.can_read_body:
        return {}
    try:
        raw = await request.json()
    except ValueError:
        raise web.HTTPBadRequest(text='{"error": "body must be JSON"}', content_type="application/json")
    if not isinstance(raw, dict):
        raise web.HTTPBadRequest(text='{"error": "body must be a JSON object"}', content_type="application/json")
    return raw


def _router(request: web.Request) -> ProviderRouter:
    return request.app[ROUTER_KEY]


def _store(request: web.Request) -> ReportStore:
    return request.app.get(STORE_KEY) or get_store()


def _language(args: dict) -> str | None:
    """Requested language, or None when the client sent something other than a string."""
    value = args.get("lang") or args.get("language") or config.DEFAULT_LANGUAGE
    return value if isinstance(value, str) else None


# ─── Routing ─────────────────────────────────────────────────────

async def handle_route(request: web.Request) -> web.Response:
    args = await _parse_body(request)
    prompt = args.get("prompt")
    if not prompt or not isinstance(prompt, str):
        return web.json_response({"error": "prompt is required"}, status=400)
    language = _language(args)
    if language is None:
        return web.json_response({"error": "lang must be a string"}, status=400)
    keys = args.get("credentials") or args.get("customKeys")
    if keys is not None and not isinstance(keys, dict):
        return web.json_response({"error": "credentials must be an object"}, status=400)

    route_request = RouteRequest(
        prompt=prompt,
        image=args.get("image") or None,
        language=language,
        provider=args.get("provider") or args.get("modelProvider") or "gemini",
        strategy=args.get("strategy") or args.get("aiStrategy") or "default",
        crop=args.get("crop") or None,
    )
    credentials = CredentialSet.from_mapping(keys)
    result = await _router(request).route(route_request, credentials)
    return web.json_response(result.to_dict())


async def handle_weather_insight(request: web.Request) -> web.Response:
    args = await _parse_body(request)
    weather = args.get("weather")
    if not isinstance(weather, dict):
        return web.json_response({"error": "weather object is required"}, status=400)
    language = _language(args)
    if language is None:
        return web.json_response({"error": "lang must be a string"}, status=400)
    backends = _router(request).backends
    text = await backends.huggingface.weather_risk_insight(weather, language)
    return web.json_response({"text": text})


async def handle_classify(request: web.Request) -> web.Response:
    args = await _parse_body(request)
    image = args.get("image")
    if not image:
        return web.json_response({"error": "image is required"}, status=400)
    backends = _router(request).backends
    scores = await backends.huggingface.classify_plant_disease(image)
    if scores is None:
        return web.json_response({"predictions": None})
    return web.json_response({"predictions": [{"label": s.label, "score": s.score} for s in scores]})


# ─── Persistence ─────────────────────────────────────────────────

async def handle_save_report(request: web.Request) -> web.Response:
    args = await _parse_body(request)
    user_id = args.get("user_id")
    report = args.get("report")
    if not user_id or not isinstance(report, dict):
        return web.json_response({"error": "user_id and report are required"}, status=400)
    data = await asyncio.to_thread(_store(request).save_report, user_id, report)
    return web.json_response({"saved": data is not None, "data": data})


async def handle_sync_profile(request: web.Request) -> web.Response:
    args = await _parse_body(request)
    user = args.get("user")
    if not isinstance(user, dict):
        return web.json_response({"error": "user object is required"}, status=400)
    data = await asyncio.to_thread(_store(request).sync_user_profile, user)
    return web.json_response({"synced": data is not None, "data": data})


# ─── Health ──────────────────────────────────────────────────────

async def handle_health(request: web.Request) -> web.Response:
    backends = await _router(request).backends.check_health()
    return web.json_response({
        "server": "ok",
        "backends": backends,
        "storage": _store(request).enabled,
        "default_language": config.DEFAULT_LANGUAGE,
        "data_dir": str(config.DATA_DIR),
    })


@web.middleware
async def debug_middleware(request: web.Request, handler):
    start = time.time()
    try:
        response = await handler(request)
        elapsed = (time.time() - start) * 1000
        debug.log_http(request.method, request.path, response.status, elapsed)
        return response
    except web.HTTPException as e:
        elapsed = (time.time() - start) * 1000
        debug.log_http(request.method, request.path, e.status, elapsed)
        raise
    except Exception:
        elapsed = (time.time() - start) * 1000
        debug.log_http(request.method, request.path, 500, elapsed)
        raise


def create_app(router: ProviderRouter | None = None, store: ReportStore | None = None) -> web.Application:
    app = web.Application(middlewares=[debug_middleware])
    app[ROUTER_KEY] = router or ProviderRouter()
    app[STORE_KEY] = store
    app.router.add_post("/route", handle_route)
    app.router.add_post("/weather_insight", handle_weather_insight)
    app.router.add_post("/classify", handle_classify)
    app.router.add_post("/reports", handle_save_report)
    app.router.add_post("/profiles", handle_sync_profile)
    app.router.add_get("/health", handle_health)
    return app


def main():
    import sys as _sys
    enable_debug = "--debug" in _sys.argv or os.environ.get("KR_DEBUG", "0") in ("1", "true", "yes")
    config.ensure_data_dir()
    debug.init(enabled=enable_debug)
    debug.log("DAEMON", f"Starting krishi-router daemon on {config.DAEMON_HOST}:{config.DAEMON_PORT}")
    debug.log("DAEMON", f"Gemini: {config.GEMINI_MODEL}, Qwen-VL: {config.HF_VISION_MODEL}, Ollama: {config.OLLAMA_URL}")
    log.info(f"Starting krishi-router daemon on {config.DAEMON_HOST}:{config.DAEMON_PORT}")
    app = create_app()

    async def on_cleanup(app):
        debug.close()

    app.on_cleanup.append(on_cleanup)

    web.run_app(app, host=config.DAEMON_HOST, port=config.DAEMON_PORT, print=lambda msg: log.info(msg))


if __name__ == "__main__":
    main()
