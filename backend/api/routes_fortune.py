"""
Routes d'interprétation de fortune.

Expose `POST /fortune/analyze`: la route ne fait que convertir le JSON en valeurs typées, déléguer
au `FortuneService` et sérialiser le résultat. Les erreurs classées remontent aux gestionnaires
enregistrés par l'application.
"""

from fastapi import APIRouter

from backend.api.schemas import AnalyzeFortuneRequest, build_response
from backend.core.container import container

router = APIRouter(prefix="/fortune", tags=["fortune"])


@router.post("/analyze")
def analyze_fortune(payload: AnalyzeFortuneRequest):
    """
    Produit une interprétation pour les données de naissance reçues.

    Paramètres:
    - payload: `AnalyzeFortuneRequest` (birthDate, birthTime, gender, fortuneType).

    Retour: `{fortuneType, result, createdAt}` et, si `RESPONSE_INCLUDE_BIRTH_INFO` est actif,
    `birthInfo`.
    """
    result = container.fortune_service.interpret(payload.to_domain())
    return build_response(result, include_birth_info=container.settings.RESPONSE_INCLUDE_BIRTH_INFO)
