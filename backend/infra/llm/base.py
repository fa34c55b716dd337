"""Interface de base pour les clients de complétion (chat LLM)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from backend.domain.prompts import RenderedPrompt


@dataclass(frozen=True)
class RawCompletion:
    """Réponse brute du fournisseur, non interprétée.

    `body` est l'objet (ou dict) renvoyé par le SDK; la validation de sa forme revient à
    l'orchestrateur de retry.
    """

    body: Any
    model: str | None = None
    latency_ms: int | None = None
    usage: dict[str, int] = field(default_factory=dict)


class ChatClient(ABC):
    """Transport vers le point de complétion: un appel, aucun retry, aucune logique métier."""

    model: str = "unknown"

    @abstractmethod
    def complete(self, prompt: RenderedPrompt) -> RawCompletion:
        """Envoie le prompt et retourne la réponse brute.

        Lève `TransportError` pour toute erreur réseau, timeout ou statut non-2xx.
        """
        ...
