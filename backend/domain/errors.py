"""Taxonomie des erreurs du pipeline d'interprétation.

Chaque échec est classé par un `ErrorKind` dès son point d'origine. La couche HTTP n'a jamais à
inspecter la chaîne des causes pour choisir un code de statut: elle lit uniquement `kind`.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Catégories exhaustives d'échec du pipeline."""

    MALFORMED_DATE = "malformed_date"
    FUTURE_DATE = "future_date"
    TOO_EARLY = "too_early"
    MALFORMED_TIME = "malformed_time"
    TEMPLATE_LOAD_ERROR = "template_load_error"
    TRANSPORT_ERROR = "transport_error"
    INVALID_COMPLETION_SHAPE = "invalid_completion_shape"
    ORCHESTRATOR_EXHAUSTED = "orchestrator_exhausted"
    UNSUPPORTED_FORTUNE_TYPE = "unsupported_fortune_type"
    UNKNOWN_FORTUNE_TYPE = "unknown_fortune_type"
    UNCLASSIFIED_INTERNAL = "unclassified_internal"


VALIDATION_KINDS = frozenset(
    {
        ErrorKind.MALFORMED_DATE,
        ErrorKind.FUTURE_DATE,
        ErrorKind.TOO_EARLY,
        ErrorKind.MALFORMED_TIME,
    }
)


class FortuneError(Exception):
    """Erreur classée: `kind`, `message` et cause optionnelle."""

    kind: ErrorKind = ErrorKind.UNCLASSIFIED_INTERNAL

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class BirthInfoValidationError(FortuneError):
    """Données de naissance invalides (date, heure, bornes métier)."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        if kind not in VALIDATION_KINDS:
            raise ValueError(f"not a validation kind: {kind}")
        super().__init__(message, kind=kind)


class TemplateLoadError(FortuneError):
    """Gabarit de prompt introuvable ou illisible (erreur fatale de démarrage)."""

    kind = ErrorKind.TEMPLATE_LOAD_ERROR


class RetryableCompletionError(FortuneError):
    """Base des échecs que l'orchestrateur a le droit de retenter."""


class TransportError(RetryableCompletionError):
    """Échec réseau, timeout ou statut non-2xx lors de l'appel LLM."""

    kind = ErrorKind.TRANSPORT_ERROR


class InvalidCompletionShapeError(RetryableCompletionError):
    """Appel réussi mais réponse absente, incomplète ou vide."""

    kind = ErrorKind.INVALID_COMPLETION_SHAPE


class OrchestratorExhaustedError(FortuneError):
    """Toutes les tentatives ont échoué."""

    kind = ErrorKind.ORCHESTRATOR_EXHAUSTED

    def __init__(self, message: str, *, attempts: int, cause: BaseException | None = None):
        super().__init__(message, cause=cause)
        self.attempts = attempts


class UnsupportedFortuneTypeError(FortuneError):
    """Type reconnu mais pas encore disponible (ex. TAROT)."""

    kind = ErrorKind.UNSUPPORTED_FORTUNE_TYPE


class UnknownFortuneTypeError(FortuneError):
    """Valeur de type de fortune non reconnue."""

    kind = ErrorKind.UNKNOWN_FORTUNE_TYPE

    def __init__(self, value: object) -> None:
        super().__init__(f"지원하지 않는 운세 타입입니다: {value}")
        self.value = value
