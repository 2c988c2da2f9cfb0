import httpx
import pytest

from nutriai_provider.config import NutriAIConfig
from nutriai_provider.contracts import ProviderName
from nutriai_provider.errors import (
    AuthenticationError,
    QuotaExceededError,
    RateLimitError,
    ResponseParseError,
    TransportError,
)


class FakeRouter:
    provider = ProviderName.GEMINI

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(self, prompt, options=None):
        self.calls.append((prompt, options))
        if self.error is not None:
            raise self.error
        return self.reply

    async def close(self):
        return None


def _cfg(**kwargs):
    return NutriAIConfig(enable_metrics=False, log_format="console", **kwargs)


async def _post(app, path, json, headers=None):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.post(path, json=json, headers=headers)


@pytest.mark.asyncio
async def test_completions_returns_extracted_data():
    pytest.importorskip("fastapi")
    from nutriai_provider.server import create_app

    router = FakeRouter(reply={"ok": True})
    app = create_app(cfg=_cfg(), router=router)
    resp = await _post(app, "/v1/completions", {"prompt": "hi", "options": {"maxTokens": 50}})
    assert resp.status_code == 200
    assert resp.json() == {"provider": "gemini", "data": {"ok": True}}
    assert router.calls[0][1].max_tokens == 50


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,status,kind",
    [
        (AuthenticationError("Invalid API key.", status_code=401), 401, "auth"),
        (QuotaExceededError("API quota exceeded.", status_code=429), 429, "quota"),
        (RateLimitError("Rate limit exceeded.", status_code=429), 429, "rate_limit"),
        (ResponseParseError("Failed to parse JSON."), 502, "parse"),
        (TransportError("Bad Gateway", status_code=502), 502, "transport"),
    ],
)
async def test_provider_errors_map_to_status_and_kind(error, status, kind):
    pytest.importorskip("fastapi")
    from nutriai_provider.server import create_app

    app = create_app(cfg=_cfg(), router=FakeRouter(error=error))
    resp = await _post(app, "/v1/completions", {"prompt": "hi"}, headers={"X-Request-Id": "req_12345678"})
    assert resp.status_code == status
    body = resp.json()["error"]
    assert body["kind"] == kind
    assert body["message"] == error.message
    assert body["code"] == "req_12345678"


@pytest.mark.asyncio
async def test_analyze_food_endpoint():
    pytest.importorskip("fastapi")
    from nutriai_provider.server import create_app

    reply = {"nutrition": {"food_name": "Apple", "calories": 95, "protein": 0.5, "carbs": 25, "fat": 0.3}}
    app = create_app(cfg=_cfg(), router=FakeRouter(reply=reply))
    resp = await _post(app, "/v1/foods/analyze", {"foodName": "apple"})
    assert resp.status_code == 200
    assert resp.json()["nutrition"]["food_name"] == "Apple"
    assert resp.json()["alternatives"] == []


@pytest.mark.asyncio
async def test_analyze_food_rejects_unknown_food_with_422():
    pytest.importorskip("fastapi")
    from nutriai_provider.server import create_app

    app = create_app(cfg=_cfg(), router=FakeRouter(reply={"nutrition": {"food_name": "", "calories": 0}}))
    resp = await _post(app, "/v1/foods/analyze", {"foodName": "asdfgh"})
    assert resp.status_code == 422
    assert resp.json()["error"]["kind"] == "parse"


@pytest.mark.asyncio
async def test_analyze_food_invalid_weight_is_400():
    pytest.importorskip("fastapi")
    from nutriai_provider.server import create_app

    router = FakeRouter(reply={})
    app = create_app(cfg=_cfg(), router=router)
    resp = await _post(app, "/v1/foods/analyze", {"foodName": "rice", "weightGrams": 0})
    assert resp.status_code == 400
    assert resp.json()["error"]["kind"] == "invalid_request"
    assert router.calls == []


@pytest.mark.asyncio
async def test_meal_plan_endpoint_includes_bmi():
    pytest.importorskip("fastapi")
    from nutriai_provider.server import create_app

    plan = {
        "breakfast": "Eggs",
        "lunch": "Chicken salad",
        "dinner": "Salmon",
        "snacks": "Nuts",
        "totals": {"calories": 1800, "protein": 140, "carbs": 60, "fat": 110},
    }
    app = create_app(cfg=_cfg(), router=FakeRouter(reply=plan))
    resp = await _post(app, "/v1/meal-plans", {"height": 180, "weight": 81, "dietType": "keto", "goal": "lose weight"})
    assert resp.status_code == 200
    assert resp.json()["bmi"] == 25.0
    assert resp.json()["totals"]["protein"] == 140


@pytest.mark.asyncio
async def test_suggestions_endpoint_degrades_to_empty_on_error():
    pytest.importorskip("fastapi")
    from nutriai_provider.server import create_app

    app = create_app(cfg=_cfg(), router=FakeRouter(error=RateLimitError("slow down", status_code=429)))
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/v1/foods/suggestions", params={"q": "chi"})
    assert resp.status_code == 200
    assert resp.json() == {"suggestions": []}


@pytest.mark.asyncio
async def test_suggestions_endpoint_short_query_skips_router():
    pytest.importorskip("fastapi")
    from nutriai_provider.server import create_app

    router = FakeRouter(reply=["apple"])
    app = create_app(cfg=_cfg(), router=router)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        short = await client.get("/v1/foods/suggestions", params={"q": "a"})
        full = await client.get("/v1/foods/suggestions", params={"q": "ap"})
    assert short.json() == {"suggestions": []}
    assert full.json() == {"suggestions": ["apple"]}
    assert len(router.calls) == 1
