"""Orchestrateur de retry autour du client de complétion.

Machine à états explicite par appel:

    ATTEMPTING(n) --échec retentable, n < max--> BACKOFF(n) --> ATTEMPTING(n+1)
    ATTEMPTING(n) --succès--> SUCCEEDED
    ATTEMPTING(n) --échec retentable, n == max--> FAILED

Seules les `RetryableCompletionError` (transport, forme de réponse) déclenchent un retry; toute
autre exception remonte immédiatement sans consommer de tentative. Le délai d'attente est injecté
(`sleep`) pour des tests déterministes sans attente réelle.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from backend.app.metrics import LLM_ATTEMPTS_TOTAL, LLM_CALL_LATENCY, LLM_RETRY_EXHAUSTED_TOTAL
from backend.domain.errors import (
    InvalidCompletionShapeError,
    OrchestratorExhaustedError,
    RetryableCompletionError,
)
from backend.domain.prompts import RenderedPrompt
from backend.infra.llm.base import ChatClient, RawCompletion

log = structlog.get_logger(__name__)


class RetryStrategy(Enum):
    """Stratégies de calcul du délai entre deux tentatives."""

    FIXED = "fixed"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


class RetryState(Enum):
    """États visibles d'un appel orchestré."""

    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RetryPolicy:
    """Politique de retry: nombre de tentatives, délai et budget optionnel."""

    max_attempts: int = 3
    base_delay_s: float = 1.0
    strategy: RetryStrategy = RetryStrategy.FIXED
    max_delay_s: float = 5.0
    total_budget_s: float | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay_s < 0:
            raise ValueError("base_delay_s must be >= 0")
        if self.total_budget_s is not None and self.total_budget_s <= 0:
            raise ValueError("total_budget_s must be > 0")


@dataclass(frozen=True)
class Transition:
    """Passage dans un état, transmis à l'observateur éventuel."""

    state: RetryState
    attempt: int
    delay_s: float | None = None
    error: Exception | None = None


def calculate_retry_delay(retry_index: int, policy: RetryPolicy) -> float:
    """Délai avant le retry numéro `retry_index` (0 pour le premier), sans jitter."""
    base = policy.base_delay_s
    if policy.strategy == RetryStrategy.EXPONENTIAL:
        return min(base * (2**retry_index), policy.max_delay_s)
    if policy.strategy == RetryStrategy.LINEAR:
        return min(base * (retry_index + 1), policy.max_delay_s)
    return base  # FIXED


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_completion_text(completion: RawCompletion | None) -> str:
    """Extrait le texte d'une complétion au format chat.completions.

    Lève `InvalidCompletionShapeError` si la réponse, le premier choix, le message ou son contenu
    est absent, ou si le contenu est vide.
    """
    body = completion.body if completion is not None else None
    choices = _field(body, "choices")
    first = choices[0] if choices else None
    message = _field(first, "message")
    if message is None:
        raise InvalidCompletionShapeError("OpenAI API에서 유효하지 않은 응답을 받았습니다")
    content = _field(message, "content")
    if content is None or not str(content).strip():
        raise InvalidCompletionShapeError("OpenAI API에서 빈 응답을 받았습니다")
    return str(content)


class RetryOrchestrator:
    """Appelle le client de complétion avec une politique de retry bornée."""

    def __init__(
        self,
        client: ChatClient,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        observer: Callable[[Transition], None] | None = None,
    ) -> None:
        self.client = client
        self.policy = policy or RetryPolicy()
        self.sleep = sleep
        self.clock = clock
        self.observer = observer

    @property
    def model(self) -> str:
        return getattr(self.client, "model", "unknown")

    def call_with_retry(self, prompt: RenderedPrompt, label: str = "운세") -> str:
        """Retourne le texte de la première complétion valide.

        Lève `OrchestratorExhaustedError` (chaînée sur le dernier échec) une fois les tentatives
        épuisées ou le budget de temps dépassé. `label` nomme le service dans ce message.
        """
        started = self.clock()
        last_error: RetryableCompletionError | None = None
        attempt = 0
        while attempt < self.policy.max_attempts:
            attempt += 1
            self._emit(Transition(RetryState.ATTEMPTING, attempt))
            try:
                text = self._attempt(prompt)
            except RetryableCompletionError as err:
                last_error = err
                LLM_ATTEMPTS_TOTAL.labels(model=self.model, result=err.kind.value).inc()
                log.warning(
                    "llm_attempt_failed",
                    attempt=attempt,
                    max_attempts=self.policy.max_attempts,
                    kind=err.kind.value,
                    error=err.message,
                )
                if attempt >= self.policy.max_attempts:
                    break
                delay = calculate_retry_delay(attempt - 1, self.policy)
                if self._budget_exceeded(started, delay):
                    log.warning("llm_retry_budget_exhausted", attempt=attempt, next_delay_s=delay)
                    break
                self._emit(Transition(RetryState.BACKOFF, attempt, delay_s=delay, error=err))
                self.sleep(delay)
                continue
            LLM_ATTEMPTS_TOTAL.labels(model=self.model, result="success").inc()
            self._emit(Transition(RetryState.SUCCEEDED, attempt))
            return text

        self._emit(Transition(RetryState.FAILED, attempt, error=last_error))
        LLM_RETRY_EXHAUSTED_TOTAL.labels(model=self.model).inc()
        reason = last_error.message if last_error is not None else "unknown"
        raise OrchestratorExhaustedError(
            f"{label} 해석 서비스 오류: {reason} ({attempt}회 시도)",
            attempts=attempt,
            cause=last_error,
        )

    def _attempt(self, prompt: RenderedPrompt) -> str:
        start = time.perf_counter()
        try:
            completion = self.client.complete(prompt)
        finally:
            LLM_CALL_LATENCY.labels(model=self.model).observe(time.perf_counter() - start)
        return extract_completion_text(completion)

    def _budget_exceeded(self, started: float, next_delay: float) -> bool:
        budget = self.policy.total_budget_s
        if budget is None:
            return False
        return (self.clock() - started) + next_delay > budget

    def _emit(self, transition: Transition) -> None:
        log.debug("llm_retry_transition", state=transition.state.value, attempt=transition.attempt)
        if self.observer is not None:
            self.observer(transition)
