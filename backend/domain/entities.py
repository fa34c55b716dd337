"""
Entités du domaine métier.

Ce module définit les modèles de données du pipeline d'interprétation: données de naissance,
requête d'interprétation et résultat assemblé.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from backend.domain.errors import UnknownFortuneTypeError

UNKNOWN_TIME_MARKERS = frozenset({"", "unknown"})


class Gender(str, Enum):
    """Genre déclaré, avec son libellé d'affichage."""

    MALE = "MALE"
    FEMALE = "FEMALE"

    @property
    def label(self) -> str:
        return _GENDER_LABELS[self]


_GENDER_LABELS = {Gender.MALE: "남성", Gender.FEMALE: "여성"}


class FortuneType(str, Enum):
    """Catégorie d'interprétation demandée."""

    SAJU = "SAJU"
    DAILY = "DAILY"
    TAROT = "TAROT"

    @property
    def label(self) -> str:
        return _FORTUNE_LABELS[self]

    @classmethod
    def parse(cls, value: FortuneType | str) -> FortuneType:
        """Résout une valeur brute (nom insensible à la casse) en `FortuneType`.

        Lève `UnknownFortuneTypeError` si la valeur ne correspond à aucun membre.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            if key in cls.__members__:
                return cls[key]
        raise UnknownFortuneTypeError(value)


_FORTUNE_LABELS = {
    FortuneType.SAJU: "사주",
    FortuneType.DAILY: "오늘의 운세",
    FortuneType.TAROT: "타로",
}


class BirthRecord(BaseModel):
    """Données de naissance brutes, telles que reçues (non encore validées)."""

    model_config = ConfigDict(frozen=True)

    birth_date: str  # YYYY-MM-DD
    birth_time: str | None = None  # HH:mm, None/"unknown" si inconnue
    gender: Gender

    @property
    def has_time(self) -> bool:
        return self.birth_time is not None and self.birth_time.strip().lower() not in UNKNOWN_TIME_MARKERS


class InterpretationRequest(BaseModel):
    """Requête d'interprétation: naissance + type demandé (brut ou résolu)."""

    model_config = ConfigDict(frozen=True)

    birth: BirthRecord
    fortune_type: FortuneType | str


class BirthInfoSummary(BaseModel):
    """Rappel des informations de naissance joint au résultat (variante étendue)."""

    model_config = ConfigDict(frozen=True)

    birth_date: str
    birth_time: str
    gender: str


class InterpretationResult(BaseModel):
    """Résultat immuable d'une interprétation réussie."""

    model_config = ConfigDict(frozen=True)

    fortune_type: str
    result_text: str = Field(min_length=1)
    created_at: datetime
    birth_info: BirthInfoSummary | None = None
