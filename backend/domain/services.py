from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime

import structlog

from backend.app.metrics import INTERPRETATIONS_TOTAL
from backend.domain.entities import (
    BirthInfoSummary,
    FortuneType,
    InterpretationRequest,
    InterpretationResult,
)
from backend.domain.errors import ErrorKind, FortuneError, UnsupportedFortuneTypeError
from backend.domain.prompts import PromptTemplate, build_prompt_variables, format_birth_time, render
from backend.domain.retry import RetryOrchestrator
from backend.domain.validation import MIN_BIRTH_YEAR, validate_birth_record

log = structlog.get_logger(__name__)

SERVABLE_TYPES = (FortuneType.SAJU, FortuneType.DAILY)


class FortuneService:
    """Service métier d'interprétation de fortune.

    Responsabilités:
    - Résoudre le type demandé et valider les données de naissance (échec immédiat).
    - Rendre le gabarit du type demandé et déléguer l'appel LLM à l'orchestrateur de retry.
    - Assembler un `InterpretationResult` horodaté; jamais de résultat partiel.
    """

    def __init__(
        self,
        templates: Mapping[FortuneType, PromptTemplate],
        orchestrator: RetryOrchestrator,
        clock: Callable[[], datetime] = datetime.now,
        min_birth_year: int = MIN_BIRTH_YEAR,
    ):
        """Initialise le service avec ses dépendances.

        Paramètres:
        - templates: gabarit chargé pour chaque type servi (SAJU, DAILY).
        - orchestrator: orchestrateur de retry encapsulant le client de complétion.
        - clock: horloge utilisée pour `created_at` et la date du jour.
        - min_birth_year: première année de naissance acceptée.
        """
        missing = [t.value for t in SERVABLE_TYPES if t not in templates]
        if missing:
            raise ValueError(f"missing prompt templates: {missing}")
        self.templates = dict(templates)
        self.orchestrator = orchestrator
        self.clock = clock
        self.min_birth_year = min_birth_year

    def interpret(self, request: InterpretationRequest) -> InterpretationResult:
        """Produit une interprétation pour la requête.

        Lève une `FortuneError` classée en cas d'échec (validation, type non supporté ou inconnu,
        retries épuisés); toute autre exception est convertie en `UNCLASSIFIED_INTERNAL`.
        """
        raw_type = request.fortune_type
        type_label = _type_label(raw_type)
        try:
            fortune_type = FortuneType.parse(raw_type)
            type_label = fortune_type.value
            result = self._interpret(fortune_type, request)
        except FortuneError as err:
            INTERPRETATIONS_TOTAL.labels(fortune_type=type_label, outcome=err.kind.value).inc()
            log.warning("interpretation_failed", fortune_type=str(raw_type), kind=err.kind.value)
            raise
        except Exception as err:
            INTERPRETATIONS_TOTAL.labels(
                fortune_type=type_label, outcome=ErrorKind.UNCLASSIFIED_INTERNAL.value
            ).inc()
            log.exception("interpretation_crashed", fortune_type=str(raw_type))
            raise FortuneError("서버 내부 오류가 발생했습니다.", cause=err) from err
        INTERPRETATIONS_TOTAL.labels(fortune_type=fortune_type.value, outcome="success").inc()
        log.info(
            "interpretation_completed",
            fortune_type=fortune_type.value,
            result_length=len(result.result_text),
        )
        return result

    def _interpret(
        self, fortune_type: FortuneType, request: InterpretationRequest
    ) -> InterpretationResult:
        birth = request.birth
        now = self.clock()
        today = now.date()
        log.info("interpretation_started", fortune_type=fortune_type.value, birth_date=birth.birth_date)

        validate_birth_record(birth, today=today, min_year=self.min_birth_year).raise_for_error()

        if fortune_type == FortuneType.TAROT:
            raise UnsupportedFortuneTypeError("타로 서비스는 준비 중입니다.")

        prompt = render(self.templates[fortune_type], build_prompt_variables(birth, today))
        text = self.orchestrator.call_with_retry(prompt, label=fortune_type.label)
        return InterpretationResult(
            fortune_type=fortune_type.label,
            result_text=text,
            created_at=self.clock(),
            birth_info=BirthInfoSummary(
                birth_date=birth.birth_date,
                birth_time=format_birth_time(birth.birth_time),
                gender=birth.gender.label,
            ),
        )


def _type_label(value: FortuneType | str) -> str:
    if isinstance(value, FortuneType):
        return value.value
    return value if value in FortuneType.__members__ else "unknown"
