"""Prometheus metrics helpers and middleware."""

from __future__ import annotations

from time import perf_counter
from typing import TYPE_CHECKING, Optional

from fastapi import FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from gerertales_providers.base import ProviderResponse


_HTTP_REQUEST_COUNT = Counter(
    "gerertales_http_requests_total",
    "Total HTTP requests processed by service",
    labelnames=("service", "method", "route", "status"),
)

_HTTP_REQUEST_LATENCY = Histogram(
    "gerertales_http_request_duration_seconds",
    "Latency of HTTP requests",
    labelnames=("service", "method", "route"),
)

_LLM_TOKENS = Counter(
    "gerertales_llm_tokens_total",
    "Token usage by provider and feature",
    labelnames=("feature", "provider", "token_type"),
)

_LLM_LATENCY = Histogram(
    "gerertales_llm_latency_seconds",
    "Latency of text provider calls",
    labelnames=("feature", "provider"),
)

_CREDITS_DEBITED = Counter(
    "gerertales_credits_debited_total",
    "Credits debited from user balances",
    labelnames=("feature", "ledger"),
)

_IMAGE_FALLBACKS = Counter(
    "gerertales_image_fallbacks_total",
    "Image generations retried against the fallback model",
    labelnames=("requested_model",),
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect request metrics for FastAPI services."""

    def __init__(self, app: FastAPI, service_name: str) -> None:
        super().__init__(app)
        self.service_name = service_name

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        start = perf_counter()
        response = await call_next(request)
        elapsed = perf_counter() - start

        route_template = request.url.path
        route = request.scope.get("route")
        if route and getattr(route, "path", None):
            route_template = route.path  # type: ignore[assignment]

        method = request.method
        status = getattr(response, "status_code", 500)

        _HTTP_REQUEST_COUNT.labels(self.service_name, method, route_template, str(status)).inc()
        _HTTP_REQUEST_LATENCY.labels(self.service_name, method, route_template).observe(elapsed)
        return response


def setup_fastapi_metrics(app: FastAPI, service_name: str, endpoint: str = "/metrics") -> None:
    """Register Prometheus middleware and metrics endpoint for a FastAPI app."""

    if getattr(app.state, "metrics_configured", False):
        return

    app.add_middleware(PrometheusMiddleware, service_name=service_name)

    @app.get(endpoint, include_in_schema=False)
    async def _metrics_endpoint() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.state.metrics_configured = True


def observe_provider_response(
    *,
    feature: str,
    provider: str,
    response: Optional["ProviderResponse"],
) -> None:
    """Capture token usage and latency from text provider responses."""

    if response is None:
        return

    if response.prompt_tokens >= 0:
        _LLM_TOKENS.labels(feature, provider, "prompt").inc(response.prompt_tokens)
    if response.completion_tokens >= 0:
        _LLM_TOKENS.labels(feature, provider, "completion").inc(response.completion_tokens)
    if isinstance(response.latency_ms, (int, float)) and response.latency_ms >= 0:
        _LLM_LATENCY.labels(feature, provider).observe(response.latency_ms / 1000)


def record_credit_debit(feature: str, amount: float, *, ledger: str) -> None:
    if amount > 0:
        _CREDITS_DEBITED.labels(feature, ledger).inc(amount)


def record_image_fallback(requested_model: str) -> None:
    _IMAGE_FALLBACKS.labels(requested_model).inc()
