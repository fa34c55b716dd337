"""Configuration de test pour pytest avec gestion des chemins.

Ce module ajoute la racine du projet au sys.path, force un client LLM factice sans délai de retry
avant l'import du container, et fournit les fixtures communes.
"""

import os
import sys
from datetime import datetime

import pytest

# Ensure project root is on sys.path so that
# imports like `from backend...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# The global container is built at import time: keep it offline and fast.
os.environ["LLM_PROVIDER"] = "fake"
os.environ["LLM_BACKOFF_MS"] = "0"
os.environ.pop("PROMPT_DIR", None)

from backend.domain.entities import FortuneType  # noqa: E402
from backend.domain.prompts import PromptTemplate  # noqa: E402
from tests.fakes import RecordingSleep  # noqa: E402

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def fixed_now() -> datetime:
    """Horloge figée utilisée par le service."""
    return FIXED_NOW


@pytest.fixture
def templates() -> dict[FortuneType, PromptTemplate]:
    """Gabarits en mémoire pour SAJU et DAILY."""
    return {
        FortuneType.SAJU: PromptTemplate(
            name="saju",
            text="성별: {gender}\n생년월일: {birthDate}\n생시: {birthTime}\n{unknownMarker}",
        ),
        FortuneType.DAILY: PromptTemplate(
            name="daily",
            text="{today} 운세 - {gender} {birthDate} {birthTime}",
        ),
    }


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """`sleep` enregistreur pour l'orchestrateur."""
    return RecordingSleep()
