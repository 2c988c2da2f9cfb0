from __future__ import annotations

import os
import time
from contextlib import asynccontextmanager

import structlog

from .api_models import (
    AnalyzeFoodBody,
    CompletionBody,
    CompletionResponse,
    MealPlanBody,
    MealPlanResponse,
    SuggestionsResponse,
    make_error_response,
)
from .config import NutriAIConfig
from .errors import ConfigurationError, ErrorKind, ProviderError
from .http_security import install_middlewares
from .logging import configure_logging
from .metrics import maybe_start_metrics, server_errors_total, server_requests_total
from .nutrition import FoodAnalysis, NutritionValidationError, analyze_food, generate_meal_plan
from .router import ProviderRouter
from .suggestions import fetch_suggestions

log = structlog.get_logger()

_STATUS_BY_KIND = {
    ErrorKind.AUTH: 401,
    ErrorKind.QUOTA: 429,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.PARSE: 502,
    ErrorKind.TRANSPORT: 502,
    ErrorKind.UNKNOWN: 502,
}


def status_for(exc: ProviderError) -> int:
    if isinstance(exc, ConfigurationError):
        return 400
    if isinstance(exc, NutritionValidationError):
        return 422
    return _STATUS_BY_KIND.get(exc.kind, 502)


def create_app(cfg: NutriAIConfig | None = None, router: ProviderRouter | None = None):
    try:
        from fastapi import FastAPI
        from fastapi.responses import JSONResponse
    except ImportError as e:  # pragma: no cover
        raise RuntimeError('Install the "server" extra: pip install -e ".[server]"') from e

    cfg = cfg or NutriAIConfig()
    configure_logging(level=cfg.log_level, fmt=cfg.log_format, secrets=cfg.secrets())
    router = router or ProviderRouter(cfg)

    def _request_id(request) -> str | None:
        return getattr(getattr(request, "state", None), "request_id", None)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        maybe_start_metrics(enable=cfg.enable_metrics, bind=cfg.metrics_bind, port=cfg.metrics_port)
        try:
            yield
        finally:
            await router.close()

    app = FastAPI(
        title="nutriai-json-provider",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if cfg.enable_api_docs else None,
        redoc_url="/redoc" if cfg.enable_api_docs else None,
        openapi_url="/openapi.json" if cfg.enable_api_docs else None,
    )
    install_middlewares(app, cfg=cfg)

    @app.exception_handler(ProviderError)
    async def _provider_error_handler(request, exc: ProviderError):
        status_code = status_for(exc)
        kind = "invalid_request" if isinstance(exc, ConfigurationError) else exc.kind.value
        server_errors_total.labels(kind=kind).inc()
        server_requests_total.labels(path=request.url.path, status=str(status_code)).inc()
        return JSONResponse(
            status_code=status_code,
            content=make_error_response(message=exc.message, kind=kind, code=_request_id(request)).model_dump(),
        )

    def _ok(path: str, started_at: float) -> None:
        server_requests_total.labels(path=path, status="200").inc()
        log.debug("request_ok", path=path, elapsed=round(time.monotonic() - started_at, 3))

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/v1/completions", response_model=CompletionResponse)
    async def completions(body: CompletionBody):
        started_at = time.monotonic()
        data = await router.complete(body.prompt, body.options)
        _ok("/v1/completions", started_at)
        return CompletionResponse(provider=router.provider.value, data=data)

    @app.post("/v1/foods/analyze", response_model=FoodAnalysis)
    async def analyze(body: AnalyzeFoodBody):
        started_at = time.monotonic()
        analysis = await analyze_food(router, body.food_name, body.weight_grams)
        _ok("/v1/foods/analyze", started_at)
        return analysis

    @app.post("/v1/meal-plans", response_model=MealPlanResponse)
    async def meal_plans(body: MealPlanBody):
        started_at = time.monotonic()
        profile = body.to_profile()
        plan = await generate_meal_plan(router, profile)
        _ok("/v1/meal-plans", started_at)
        return MealPlanResponse(bmi=profile.bmi, **plan.model_dump())

    @app.get("/v1/foods/suggestions", response_model=SuggestionsResponse)
    async def suggestions(q: str = ""):
        started_at = time.monotonic()
        try:
            names = await fetch_suggestions(
                router, q, min_chars=cfg.suggestion_min_chars, limit=cfg.max_suggestions
            )
        except ProviderError as e:
            # Suggestions are optional; the field keeps working without them.
            log.info("suggestions_degraded", kind=e.kind.value, error=e.message)
            names = []
        _ok("/v1/foods/suggestions", started_at)
        return SuggestionsResponse(suggestions=names)

    return app


def main() -> None:  # pragma: no cover
    try:
        import uvicorn
    except ImportError as e:
        raise RuntimeError('Install the "server" extra: pip install -e ".[server]"') from e

    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("nutriai_provider.server:create_app", host=host, port=port, factory=True)


if __name__ == "__main__":  # pragma: no cover
    main()
