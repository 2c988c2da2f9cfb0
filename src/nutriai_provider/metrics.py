from __future__ import annotations

from prometheus_client import Counter, Histogram, start_http_server

server_requests_total = Counter(
    "nutriai_server_requests_total",
    "Total HTTP requests handled by server",
    labelnames=["path", "status"],
)

server_errors_total = Counter(
    "nutriai_server_errors_total",
    "Total errors returned by server",
    labelnames=["kind"],
)

requests_total = Counter(
    "nutriai_provider_requests_total",
    "Total completion requests by provider",
    labelnames=["provider", "status"],
)

request_latency_seconds = Histogram(
    "nutriai_provider_request_latency_seconds",
    "Completion request latency",
    buckets=[0.1, 0.3, 0.5, 1, 2, 5, 10, 30, 60],
    labelnames=["provider"],
)

provider_errors_total = Counter(
    "nutriai_provider_errors_total",
    "Classified completion errors",
    labelnames=["provider", "kind"],
)

suggestion_requests_total = Counter(
    "nutriai_suggestion_requests_total",
    "Suggestion fetches by outcome",
    labelnames=["outcome"],
)


def maybe_start_metrics(*, enable: bool, bind: str, port: int) -> None:
    if not enable:
        return
    start_http_server(port, addr=bind)
