"""Tests pour l'assemblage du container.

Ce module teste les différents chemins de configuration du container: choix du client LLM,
traduction de la politique de retry et chargement des gabarits au démarrage.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from backend.core.container import Container, build_chat_client, build_retry_policy
from backend.core.settings import Settings
from backend.domain.entities import FortuneType
from backend.domain.errors import TemplateLoadError
from backend.domain.retry import RetryStrategy
from backend.infra.llm.fake_client import FakeChatClient
from backend.infra.llm.openai_client import OpenAIChatClient

BACKOFF_S = 0.25


def _settings(**kwargs) -> Settings:
    kwargs.setdefault("LLM_PROVIDER", "fake")
    return Settings(_env_file=None, **kwargs)


def test_container_fake_path() -> None:
    """Teste que le container assemble le pipeline avec le client factice."""
    c = Container(settings=_settings())
    assert isinstance(c.chat_client, FakeChatClient)
    assert set(c.templates) == {FortuneType.SAJU, FortuneType.DAILY}
    assert c.fortune_service.orchestrator is c.orchestrator


def test_container_openai_without_key() -> None:
    """Teste qu'un client OpenAI sans clé est construit (échec différé à l'appel)."""
    client = build_chat_client(_settings(LLM_PROVIDER="openai", OPENAI_API_KEY=None))
    assert isinstance(client, OpenAIChatClient)
    assert client.client is None


def test_unknown_provider_raises() -> None:
    """Teste le refus d'un fournisseur LLM inconnu."""
    with pytest.raises(RuntimeError):
        build_chat_client(_settings(LLM_PROVIDER="mystery"))


def test_retry_policy_from_settings() -> None:
    """Teste la traduction des paramètres LLM_* en politique de retry."""
    policy = build_retry_policy(
        _settings(LLM_MAX_ATTEMPTS=4, LLM_BACKOFF_MS=250, LLM_BACKOFF_STRATEGY="Exponential")
    )
    assert policy.max_attempts == 4
    assert policy.base_delay_s == BACKOFF_S
    assert policy.strategy == RetryStrategy.EXPONENTIAL


def test_unknown_backoff_strategy_raises() -> None:
    """Teste le refus d'une stratégie de backoff inconnue."""
    with pytest.raises(RuntimeError):
        build_retry_policy(_settings(LLM_BACKOFF_STRATEGY="random"))


def test_missing_prompt_dir_fails_startup(tmp_path: Path) -> None:
    """Teste qu'un gabarit manquant fait échouer la construction du container."""
    with pytest.raises(TemplateLoadError):
        Container(settings=_settings(PROMPT_DIR=str(tmp_path)))
