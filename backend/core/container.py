"""
Conteneur d'injection de dépendances et configuration application.

Assemble explicitement les composants du pipeline (settings, gabarits de prompt, client LLM,
orchestrateur de retry, service d'interprétation) et expose un singleton `container` utilisé par
le reste de l'application. Les gabarits sont chargés une seule fois ici: une erreur de chargement
fait échouer le démarrage.
"""

from __future__ import annotations

import os

import structlog

from backend.core.settings import Settings, get_settings
from backend.domain.entities import FortuneType
from backend.domain.prompts import PromptTemplate, load_template
from backend.domain.retry import RetryOrchestrator, RetryPolicy, RetryStrategy
from backend.domain.services import FortuneService
from backend.infra.llm.base import ChatClient
from backend.infra.llm.fake_client import FakeChatClient
from backend.infra.llm.openai_client import OpenAIChatClient

log = structlog.get_logger(__name__)

TEMPLATE_FILES = {
    FortuneType.SAJU: "saju.txt",
    FortuneType.DAILY: "daily.txt",
}


def load_templates(prompt_dir: str) -> dict[FortuneType, PromptTemplate]:
    """Charge le gabarit de chaque type servi; lève `TemplateLoadError` au premier échec."""
    return {
        fortune_type: load_template(os.path.join(prompt_dir, filename), name=fortune_type.value.lower())
        for fortune_type, filename in TEMPLATE_FILES.items()
    }


def build_chat_client(settings: Settings) -> ChatClient:
    """Construit le client de complétion selon `LLM_PROVIDER`."""
    provider = (settings.LLM_PROVIDER or "openai").strip().lower()
    if provider == "fake":
        return FakeChatClient()
    if provider != "openai":
        raise RuntimeError(f"Unknown LLM_PROVIDER: {settings.LLM_PROVIDER}")
    if not settings.OPENAI_API_KEY:
        log.warning("openai_api_key_missing", model=settings.OPENAI_MODEL)
    return OpenAIChatClient(
        api_key=settings.OPENAI_API_KEY,
        model=settings.OPENAI_MODEL,
        max_tokens=settings.OPENAI_MAX_TOKENS,
        temperature=settings.OPENAI_TEMPERATURE,
        timeout_s=settings.OPENAI_TIMEOUT_S,
    )


def build_retry_policy(settings: Settings) -> RetryPolicy:
    """Traduit les paramètres LLM_* en `RetryPolicy`."""
    try:
        strategy = RetryStrategy((settings.LLM_BACKOFF_STRATEGY or "fixed").strip().lower())
    except ValueError as err:
        raise RuntimeError(f"Unknown LLM_BACKOFF_STRATEGY: {settings.LLM_BACKOFF_STRATEGY}") from err
    return RetryPolicy(
        max_attempts=settings.LLM_MAX_ATTEMPTS,
        base_delay_s=settings.LLM_BACKOFF_MS / 1000.0,
        strategy=strategy,
        max_delay_s=settings.LLM_BACKOFF_MAX_MS / 1000.0,
        total_budget_s=settings.LLM_RETRY_BUDGET_S,
    )


class Container:
    def __init__(self, settings: Settings | None = None, chat_client: ChatClient | None = None):
        self.settings = settings or get_settings()
        self.templates = load_templates(self.settings.PROMPT_DIR)
        self.chat_client = chat_client or build_chat_client(self.settings)
        self.orchestrator = RetryOrchestrator(
            self.chat_client, policy=build_retry_policy(self.settings)
        )
        self.fortune_service = FortuneService(
            self.templates,
            self.orchestrator,
            min_birth_year=self.settings.MIN_BIRTH_YEAR,
        )


container = Container()
