"""
Métriques Prometheus pour l'application.

Ce module définit les métriques Prometheus du service d'interprétation: trafic HTTP, issues des
interprétations et comportement des appels LLM (tentatives, latence).
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

# Business metrics
INTERPRETATIONS_TOTAL = Counter(
    "fortune_interpretations_total",
    "Total interpretation requests by fortune type and outcome",
    ["fortune_type", "outcome"],
)

# LLM call metrics
LLM_ATTEMPTS_TOTAL = Counter(
    "llm_attempts_total",
    "LLM completion attempts by result",
    ["model", "result"],
)
LLM_CALL_LATENCY = Histogram(
    "llm_call_latency_seconds",
    "Latency of a single LLM completion attempt",
    ["model"],
    buckets=[0.25, 0.5, 1.0, 2.0, 4.0, 8.0, 16.0, 32.0],
)
LLM_RETRY_EXHAUSTED_TOTAL = Counter(
    "llm_retry_exhausted_total",
    "Calls that failed after exhausting all attempts",
    ["model"],
)

_KNOWN_ROUTES = frozenset({"/fortune/analyze", "/health", "/metrics"})


def normalize_route(path: str) -> str:
    """Limite la cardinalité du label `route` aux routes connues."""
    return path if path in _KNOWN_ROUTES else "other"


@metrics_router.get("/metrics")
def metrics():
    """
    Expose les métriques Prometheus au format texte.

    Returns:
        Response: Réponse HTTP contenant les métriques au format Prometheus.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware Prometheus pour mesurer les métriques HTTP.

    Collecte les métriques de comptage des requêtes et de latence par route pour l'exposition
    Prometheus.
    """

    async def dispatch(self, request: Request, call_next):
        """Traite une requête HTTP et collecte les métriques."""
        start = time.perf_counter()
        response: Response = await call_next(request)
        route = normalize_route(request.scope.get("path", "unknown"))
        REQUEST_COUNT.labels(request.method, route, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(route).observe(time.perf_counter() - start)
        return response
