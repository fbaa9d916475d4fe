"""FastAPI server exposing profile search, activity collection, LLM analysis and preview images."""
import logging

import aiosqlite
from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel

from ethos_spider.analyzers.profile import analyze_profile
from ethos_spider.api.cache import AnalysisCache
from ethos_spider.config import cache_db_path, openrouter_api_key
from ethos_spider.errors import EthosSpiderError, InvalidRequestError
from ethos_spider.fetchers.ethos import PAGE_SIZE, collect_activities, search_profiles
from ethos_spider.models import Activity
from ethos_spider.render.og_image import render_fallback, render_preview

_log = logging.getLogger(__name__)

app = FastAPI(title="ethos-spider API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

SVG_MEDIA_TYPE = "image/svg+xml"
CACHE_MAX_AGE = 3600
FALLBACK_MAX_AGE = 300

_cache = AnalysisCache(cache_db_path())


@app.on_event("startup")
async def _init_cache() -> None:
    await _cache.init()
    _log.info("analysis cache at %s", _cache.db_path)


# ── Error mapping ────────────────────────────────────────────────────────────

@app.exception_handler(EthosSpiderError)
async def _handle_app_error(request: Request, exc: EthosSpiderError) -> JSONResponse:
    if exc.status_code >= 500:
        _log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body") or "body"
    return JSONResponse(
        status_code=400,
        content={"error": f"Invalid field '{field}': {first.get('msg', 'invalid request')}"},
    )


# ── Endpoints ────────────────────────────────────────────────────────────────

class SearchRequest(BaseModel):
    query: str | None = None
    limit: int = 10
    offset: int = 0


class ActivitiesRequest(BaseModel):
    userkey: str | None = None


class AnalyzeRequest(BaseModel):
    userkey: str | None = None
    activities: list[Activity] | None = None
    # When given, the finished analysis is cached for the preview image endpoint.
    username: str | None = None
    name: str | None = None


@app.get("/api/health")
def health():
    """Check that required env vars are set."""
    if not openrouter_api_key():
        return JSONResponse(status_code=503, content={"error": "OPENROUTER_API_KEY not set"})
    return {"status": "ok"}


@app.get("/api/search")
async def search_get(query: str | None = None, limit: int = 10, offset: int = 0):
    """Proxy a profile search to the Ethos API."""
    return await search_profiles(query, limit, offset)


@app.post("/api/search")
async def search_post(req: SearchRequest):
    return await search_profiles(req.query, req.limit, req.offset)


@app.post("/api/activities")
async def activities(req: ActivitiesRequest):
    """Collect every review and vouch the profile has received."""
    if not req.userkey:
        raise InvalidRequestError("userkey is required")
    values = await collect_activities(req.userkey)
    return {"values": values, "total": len(values), "limit": PAGE_SIZE, "offset": 0}


@app.post("/api/analyze")
async def analyze(req: AnalyzeRequest):
    """Score the given activities against the category taxonomy."""
    if not req.userkey or req.activities is None:
        raise InvalidRequestError("userkey and activities array are required")

    analysis = await analyze_profile(req.userkey, req.activities, api_key=openrouter_api_key())
    if req.username:
        try:
            await _cache.put(req.username, req.name or req.username, analysis)
        except (aiosqlite.Error, OSError) as exc:
            _log.warning("could not cache analysis for @%s: %s", req.username, exc)
    return analysis.model_dump(mode="json", by_alias=True)


async def _resolve_display(username: str) -> tuple[str, str]:
    """Best-effort (username, display name) lookup via search; falls back to the raw username."""
    try:
        data = await search_profiles(username, limit=1)
    except EthosSpiderError as exc:
        _log.warning("display name lookup failed for @%s: %s", username, exc.message)
        return username, username
    values = (data.get("data") or {}).get("values") or []
    if not values:
        return username, username
    user = values[0]
    handle = user.get("username") or username
    return handle, user.get("name") or handle


@app.get("/api/og-image")
async def og_image(username: str | None = None):
    """Always answers with an SVG; errors degrade to the fallback card with a shorter cache life."""
    if not username:
        return PlainTextResponse("Username parameter required", status_code=400)

    try:
        cached = await _cache.get(username)
        if cached:
            scores = cached["analysis"].get("results") or {}
            handle = username.lstrip("@")
            svg = render_preview(handle, cached["name"] or handle, scores)
        else:
            handle, name = await _resolve_display(username)
            svg = render_preview(handle, name, None)
        return Response(
            svg,
            media_type=SVG_MEDIA_TYPE,
            headers={"Cache-Control": f"public, max-age={CACHE_MAX_AGE}"},
        )
    except Exception:
        _log.exception("Error generating preview image for @%s", username)
        return Response(
            render_fallback(username, username),
            media_type=SVG_MEDIA_TYPE,
            headers={"Cache-Control": f"public, max-age={FALLBACK_MAX_AGE}"},
        )
