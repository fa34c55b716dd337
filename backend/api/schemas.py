# Schémas Pydantic exposés par l'API (requêtes et réponses), en camelCase côté JSON.

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from backend.domain.entities import (
    BirthRecord,
    Gender,
    InterpretationRequest,
    InterpretationResult,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalyzeFortuneRequest(_CamelModel):
    """Requête d'interprétation.

    Champs:
    - birthDate: str (YYYY-MM-DD, contrôlé par le domaine)
    - birthTime: str | None (HH:mm, absent/"unknown" si inconnu)
    - gender: MALE | FEMALE
    - fortuneType: str (SAJU, DAILY, TAROT; toute autre valeur est rejetée par le domaine)
    """

    birth_date: str
    birth_time: str | None = None
    gender: Gender
    fortune_type: str

    def to_domain(self) -> InterpretationRequest:
        return InterpretationRequest(
            birth=BirthRecord(
                birth_date=self.birth_date,
                birth_time=self.birth_time,
                gender=self.gender,
            ),
            fortune_type=self.fortune_type,
        )


class BirthInfoSummaryOut(_CamelModel):
    """Rappel des informations de naissance (variante étendue)."""

    birth_date: str
    birth_time: str
    gender: str


class FortuneResponse(_CamelModel):
    """Réponse d'interprétation.

    Champs:
    - fortuneType: libellé du type (ex. "사주")
    - result: texte produit par le LLM
    - createdAt: horodatage d'assemblage
    - birthInfo: présent uniquement dans la variante étendue
    """

    fortune_type: str
    result: str
    created_at: datetime
    birth_info: BirthInfoSummaryOut | None = None


def build_response(result: InterpretationResult, include_birth_info: bool = False) -> dict:
    """Sérialise un résultat en JSON (variante minimale ou étendue)."""
    response = FortuneResponse(
        fortune_type=result.fortune_type,
        result=result.result_text,
        created_at=result.created_at,
        birth_info=(
            BirthInfoSummaryOut(**result.birth_info.model_dump())
            if include_birth_info and result.birth_info is not None
            else None
        ),
    )
    return response.model_dump(mode="json", by_alias=True, exclude_none=True)
