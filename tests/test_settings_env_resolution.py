"""
Tests pour la résolution des variables d'environnement.

Ce module teste le chargement et la résolution des variables d'environnement à partir de fichiers
.env personnalisés dans les settings.
"""

from __future__ import annotations

import importlib
from pathlib import Path

import pytest

TEST_MAX_ATTEMPTS = 5
DEFAULT_MAX_ATTEMPTS = 3
OVERRIDDEN_KEYS = ("OPENAI_MODEL", "LLM_MAX_ATTEMPTS", "RESPONSE_INCLUDE_BIRTH_INFO")


@pytest.fixture
def settings_mod(monkeypatch):
    """Module settings rechargé après le test pour restaurer la résolution par défaut."""
    for key in OVERRIDDEN_KEYS:
        monkeypatch.delenv(key, raising=False)
    mod = importlib.import_module("backend.core.settings")
    yield mod
    monkeypatch.delenv("ENV_FILE", raising=False)
    importlib.reload(mod)


def test_settings_reads_env_file(tmp_path: Path, monkeypatch, settings_mod) -> None:
    """
    Teste que les settings lisent correctement les fichiers d'environnement.

    Vérifie que les variables d'environnement définies dans un fichier .env personnalisé sont
    correctement chargées et appliquées aux settings.
    """
    env = tmp_path / ".env.custom"
    env.write_text(
        "OPENAI_MODEL=gpt-4o-mini\nLLM_MAX_ATTEMPTS=5\nRESPONSE_INCLUDE_BIRTH_INFO=true\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("ENV_FILE", str(env))

    # Reload settings module to pick up new ENV_FILE
    importlib.reload(settings_mod)

    s = settings_mod.get_settings()
    assert s.OPENAI_MODEL == "gpt-4o-mini"
    assert s.LLM_MAX_ATTEMPTS == TEST_MAX_ATTEMPTS
    assert s.RESPONSE_INCLUDE_BIRTH_INFO is True


def test_environment_overrides_env_file(tmp_path: Path, monkeypatch, settings_mod) -> None:
    """Teste que les variables d'environnement priment sur le fichier .env."""
    env = tmp_path / ".env.custom"
    env.write_text("OPENAI_MODEL=from-file\n", encoding="utf-8")
    monkeypatch.setenv("ENV_FILE", str(env))
    monkeypatch.setenv("OPENAI_MODEL", "from-env")

    importlib.reload(settings_mod)

    assert settings_mod.get_settings().OPENAI_MODEL == "from-env"


def test_defaults(settings_mod) -> None:
    """Teste les valeurs par défaut de la politique de retry et de la réponse."""
    s = settings_mod.Settings(_env_file=None)
    assert s.LLM_MAX_ATTEMPTS == DEFAULT_MAX_ATTEMPTS
    assert s.LLM_BACKOFF_STRATEGY == "fixed"
    assert s.RESPONSE_INCLUDE_BIRTH_INFO is False
    assert Path(s.PROMPT_DIR, "saju.txt").exists()
