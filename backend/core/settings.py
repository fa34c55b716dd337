"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
"""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Détermination du fichier .env à utiliser avec priorité:
# 1) ENV_FILE (chemin explicite)
# 2) .env.{APP_ENV} si présent
# 3) .env (défaut)
_cwd = Path.cwd()
_env_file_from_env = os.getenv("ENV_FILE")
if _env_file_from_env:
    _ENV_FILE_PATH = _env_file_from_env
else:
    _app_env = os.getenv("APP_ENV", "dev")
    _candidate_specific = _cwd / f".env.{_app_env}"
    _candidate_default = _cwd / ".env"
    if _candidate_specific.exists():
        _ENV_FILE_PATH = _candidate_specific
    else:
        _ENV_FILE_PATH = _candidate_default

DEFAULT_PROMPT_DIR = str(Path(__file__).resolve().parent.parent / "infra" / "prompts")


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
    )
    APP_NAME: str = "fortune-backend"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = True
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000

    # Client LLM: "openai" | "fake"
    LLM_PROVIDER: str = "openai"
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    OPENAI_MAX_TOKENS: int = 2000
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_TIMEOUT_S: float = 30.0

    # Politique de retry autour de l'appel LLM
    LLM_MAX_ATTEMPTS: int = 3
    LLM_BACKOFF_MS: int = 1000
    LLM_BACKOFF_STRATEGY: str = "fixed"  # "fixed" | "linear" | "exponential"
    LLM_BACKOFF_MAX_MS: int = 5000
    LLM_RETRY_BUDGET_S: float | None = None

    # Gabarits de prompt et réponse
    PROMPT_DIR: str = DEFAULT_PROMPT_DIR
    RESPONSE_INCLUDE_BIRTH_INFO: bool = False
    MIN_BIRTH_YEAR: int = 1900


def get_settings() -> Settings:
    """Construit et retourne la configuration de l'application."""
    return Settings()
