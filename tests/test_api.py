"""Endpoint tests for the FastAPI server."""
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ethos_spider.api import server
from ethos_spider.api.cache import AnalysisCache
from ethos_spider.errors import UpstreamError

pytestmark = pytest.mark.asyncio

ACTIVITY = {
    "type": "review",
    "data": {"comment": "Great builder", "score": "positive", "metadata": "not json"},
    "author": {"userkey": "profileId:2", "name": "Bob", "score": 1900},
    "timestamp": 1700000000,
    "llmQualityScore": 70,
}

SEARCH_RESPONSE = {
    "ok": True,
    "data": {"values": [{"userkey": "profileId:8", "name": "Alice A.", "username": "alice", "score": 2100}]},
}


@pytest_asyncio.fixture(autouse=True)
async def isolated_cache(tmp_path, monkeypatch):
    cache = AnalysisCache(str(tmp_path / "cache.db"))
    monkeypatch.setattr(server, "_cache", cache)
    yield cache


@pytest_asyncio.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=server.app), base_url="http://test") as c:
        yield c


# ── health / search ──────────────────────────────────────────────────────────

async def test_health_requires_api_key(client, monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    r = await client.get("/api/health")
    assert r.status_code == 503

    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    r = await client.get("/api/health")
    assert r.json() == {"status": "ok"}


async def test_search_query_too_short(client):
    r = await client.get("/api/search", params={"query": "a"})
    assert r.status_code == 400
    assert r.json()["error"] == "Query must be between 2 and 100 characters"


async def test_search_get_passes_through(client):
    with patch.object(server, "search_profiles", new=AsyncMock(return_value=SEARCH_RESPONSE)) as mock_search:
        r = await client.get("/api/search", params={"query": "alice", "limit": 3})
    assert r.status_code == 200
    assert r.json() == SEARCH_RESPONSE
    mock_search.assert_awaited_once_with("alice", 3, 0)


async def test_search_post(client):
    with patch.object(server, "search_profiles", new=AsyncMock(return_value=SEARCH_RESPONSE)):
        r = await client.post("/api/search", json={"query": "alice"})
    assert r.json() == SEARCH_RESPONSE


async def test_search_upstream_failure_is_500(client):
    error = UpstreamError("ethos", "Ethos API responded with status: 503", status=503)
    with patch.object(server, "search_profiles", new=AsyncMock(side_effect=error)):
        r = await client.get("/api/search", params={"query": "alice"})
    assert r.status_code == 500


# ── activities ───────────────────────────────────────────────────────────────

async def test_activities_requires_userkey(client):
    r = await client.post("/api/activities", json={})
    assert r.status_code == 400
    assert r.json()["error"] == "userkey is required"


async def test_activities_envelope(client):
    with patch.object(server, "collect_activities", new=AsyncMock(return_value=[ACTIVITY, ACTIVITY])):
        r = await client.post("/api/activities", json={"userkey": "profileId:1"})
    assert r.status_code == 200
    assert r.json() == {"values": [ACTIVITY, ACTIVITY], "total": 2, "limit": 500, "offset": 0}


async def test_activities_upstream_error_detail(client):
    error = UpstreamError("ethos", "Ethos API responded with status: 502", status=502, body="bad gateway")
    with patch.object(server, "collect_activities", new=AsyncMock(side_effect=error)):
        r = await client.post("/api/activities", json={"userkey": "profileId:1"})
    assert r.status_code == 500
    assert r.json() == {"error": "Ethos API responded with status: 502", "details": "bad gateway"}


# ── analyze ──────────────────────────────────────────────────────────────────

async def test_analyze_requires_activities(client, monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    r = await client.post("/api/analyze", json={"userkey": "profileId:1"})
    assert r.status_code == 400


async def test_analyze_rejects_malformed_activity(client, monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    r = await client.post("/api/analyze", json={"userkey": "profileId:1", "activities": [{"type": "review"}]})
    assert r.status_code == 400
    assert "activities" in r.json()["error"]


async def test_analyze_missing_key_is_config_error(client, monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    mock_score = AsyncMock()
    with patch("ethos_spider.analyzers.profile.score_activities", new=mock_score):
        r = await client.post("/api/analyze", json={"userkey": "profileId:1", "activities": [ACTIVITY]})
    assert r.status_code == 500
    assert r.json()["error"] == "OpenRouter API key not configured"
    mock_score.assert_not_called()


async def test_analyze_empty_activities_never_calls_llm(client, monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    mock_score = AsyncMock()
    with patch("ethos_spider.analyzers.profile.score_activities", new=mock_score):
        r = await client.post("/api/analyze", json={"userkey": "profileId:1", "activities": []})
    assert r.status_code == 400
    assert r.json()["error"] == "No reviews or vouches found for analysis"
    mock_score.assert_not_called()


async def test_analyze_returns_profile_analysis_and_caches(client, monkeypatch, isolated_cache):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    mock_score = AsyncMock(return_value={"Builder": 0.73})
    vouch = {**ACTIVITY, "type": "vouch", "author": {"name": "Carol", "score": 2100}}
    with patch("ethos_spider.analyzers.profile.score_activities", new=mock_score):
        r = await client.post(
            "/api/analyze",
            json={"userkey": "profileId:1", "activities": [ACTIVITY, vouch], "username": "alice", "name": "Alice A."},
        )
    assert r.status_code == 200
    data = r.json()
    assert data["userkey"] == "profileId:1"
    assert data["totalReviews"] == 1
    assert data["totalVouches"] == 1
    assert data["avgAuthorScore"] == 2000
    assert data["model"] == "anthropic/claude-3.5-sonnet"
    assert data["results"] == {"Builder": 0.73}

    cached = await isolated_cache.get("alice")
    assert cached["name"] == "Alice A."


async def test_analyze_succeeds_when_cache_is_unwritable(client, monkeypatch, tmp_path):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    monkeypatch.setattr(server, "_cache", AnalysisCache(str(tmp_path / "missing-dir" / "cache.db")))
    with patch("ethos_spider.analyzers.profile.score_activities", new=AsyncMock(return_value={"Builder": 0.73})):
        r = await client.post(
            "/api/analyze",
            json={"userkey": "profileId:1", "activities": [ACTIVITY], "username": "alice"},
        )
    assert r.status_code == 200
    assert r.json()["results"] == {"Builder": 0.73}
    assert r.json()["totalReviews"] == 1


async def test_analyze_llm_failure_is_500(client, monkeypatch):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-test")
    error = UpstreamError("openrouter", "OpenRouter API responded with status: 429", status=429, body="slow down")
    with patch("ethos_spider.analyzers.profile.score_activities", new=AsyncMock(side_effect=error)):
        r = await client.post("/api/analyze", json={"userkey": "profileId:1", "activities": [ACTIVITY]})
    assert r.status_code == 500
    assert r.json()["details"] == "slow down"


# ── og-image ─────────────────────────────────────────────────────────────────

async def test_og_image_requires_username(client):
    r = await client.get("/api/og-image")
    assert r.status_code == 400


async def test_og_image_from_cache(client, isolated_cache):
    from ethos_spider.analyzers.profile import aggregate
    from ethos_spider.models import Activity

    analysis = aggregate("profileId:8", [Activity.model_validate(ACTIVITY)], {"Builder": 0.7, "Degen": 0.3}, model="m")
    await isolated_cache.put("alice", "Alice A.", analysis)

    r = await client.get("/api/og-image", params={"username": "alice"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("image/svg+xml")
    assert r.headers["cache-control"] == "public, max-age=3600"
    assert "<path" in r.text
    assert "Alice A." in r.text


async def test_og_image_from_cache_strips_at_sign(client, isolated_cache):
    from ethos_spider.analyzers.profile import aggregate
    from ethos_spider.models import Activity

    analysis = aggregate("profileId:8", [Activity.model_validate(ACTIVITY)], {"Builder": 0.7}, model="m")
    await isolated_cache.put("alice", "", analysis)

    r = await client.get("/api/og-image", params={"username": "@Alice"})
    assert r.status_code == 200
    assert "<path" in r.text
    assert "@@Alice" not in r.text
    assert "@Alice" in r.text


async def test_og_image_without_cache_uses_search_for_name(client):
    with patch.object(server, "search_profiles", new=AsyncMock(return_value=SEARCH_RESPONSE)):
        r = await client.get("/api/og-image", params={"username": "alice"})
    assert r.status_code == 200
    assert r.headers["cache-control"] == "public, max-age=3600"
    assert "Alice A." in r.text
    assert "Profile analysis coming soon..." in r.text


async def test_og_image_search_failure_still_renders(client):
    error = UpstreamError("ethos", "down")
    with patch.object(server, "search_profiles", new=AsyncMock(side_effect=error)):
        r = await client.get("/api/og-image", params={"username": "alice"})
    assert r.status_code == 200
    assert "@alice" in r.text


async def test_og_image_error_falls_back_with_short_cache(client, isolated_cache):
    with patch.object(isolated_cache, "get", new=AsyncMock(side_effect=RuntimeError("disk gone"))):
        r = await client.get("/api/og-image", params={"username": "alice"})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("image/svg+xml")
    assert r.headers["cache-control"] == "public, max-age=300"
    assert "Profile analysis coming soon..." in r.text
