"""
Application principale FastAPI.

Ce module assemble les composants de l'application: logging, middlewares, gestionnaires
d'erreurs, routes et métriques du service d'interprétation.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Ajouter les middlewares (request id, timing, Prometheus)
- Enregistrer les gestionnaires d'erreurs classées
- Monter les routers (santé, fortune, métriques)
"""

from __future__ import annotations

from fastapi import FastAPI

from backend.api.routes_fortune import router as fortune_router
from backend.api.routes_health import router as health_router
from backend.apigw.errors import register_error_handlers
from backend.app.metrics import PrometheusMiddleware, metrics_router
from backend.core.container import container
from backend.core.logging import setup_logging
from backend.middlewares.request_id import RequestIDMiddleware
from backend.middlewares.timing import TimingMiddleware


def create_app() -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Configure le logging structuré (structlog)
    - Lit les paramètres d'exécution
    - Ajoute les middlewares utiles au debug/traçabilité
    - Publie les routes de santé, de fortune et de métriques
    """
    settings = container.settings
    setup_logging(debug=settings.APP_DEBUG)
    app = FastAPI(title=settings.APP_NAME, debug=False)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(fortune_router)
    app.include_router(metrics_router)
    return app


app = create_app()
