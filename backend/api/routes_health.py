"""
Endpoint de santé pour vérifier la disponibilité de l'API.

Expose `/health` pour signaler l'état général de l'application, le client LLM configuré et les
gabarits de prompt chargés.
"""


from fastapi import APIRouter

from backend.core.container import container

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Vérifie la disponibilité de l'API et la configuration du pipeline."""
    return {
        "status": "ok",
        "llm_provider": getattr(container.settings, "LLM_PROVIDER", "unknown"),
        "llm_model": getattr(container.chat_client, "model", "unknown"),
        "templates": sorted(t.value for t in container.templates),
    }
