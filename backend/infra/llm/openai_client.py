"""
Client de complétion basé sur l'API OpenAI (chat.completions).

Adaptateur de transport pur: il envoie le prompt rendu avec les paramètres du modèle et renvoie la
réponse brute. Toute erreur du SDK ou du réseau est convertie en `TransportError`; les retries
internes du SDK sont désactivés pour laisser la politique à l'orchestrateur.
"""

from __future__ import annotations

import time
from typing import Any

import structlog
from openai import OpenAI, OpenAIError

from backend.domain.errors import TransportError
from backend.domain.prompts import RenderedPrompt
from backend.infra.llm.base import ChatClient, RawCompletion

log = structlog.get_logger(__name__)


class OpenAIChatClient(ChatClient):
    """Client chat.completions OpenAI."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-3.5-turbo",
        max_tokens: int = 2000,
        temperature: float = 0.7,
        timeout_s: float = 30.0,
        client: Any | None = None,
    ) -> None:
        """Initialise le client; `client` permet d'injecter un SDK simulé."""
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        if client is not None:
            self.client = client
        elif api_key:
            self.client = OpenAI(api_key=api_key, timeout=timeout_s, max_retries=0)
        else:
            self.client = None

    def complete(self, prompt: RenderedPrompt) -> RawCompletion:
        """Un seul appel chat.completions; aucune interprétation du contenu."""
        if self.client is None:
            raise TransportError("OpenAI API 키가 설정되지 않았습니다")
        start = time.perf_counter()
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt.text}],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except OpenAIError as err:
            log.warning("openai_call_failed", model=self.model, error=type(err).__name__)
            raise TransportError(f"OpenAI API 호출 실패: {err}", cause=err) from err
        except OSError as err:
            log.warning("openai_network_error", model=self.model, error=type(err).__name__)
            raise TransportError(f"OpenAI API 네트워크 오류: {err}", cause=err) from err
        latency_ms = int((time.perf_counter() - start) * 1000)
        return RawCompletion(
            body=resp,
            model=self.model,
            latency_ms=latency_ms,
            usage=self._extract_usage_dict(resp),
        )

    def _extract_usage_dict(self, resp: Any) -> dict[str, int]:
        """Extrait les infos d'usage depuis la réponse OpenAI (dict vide si absentes)."""
        usage = getattr(resp, "usage", None)
        if not usage:
            return {}
        return {
            "prompt_tokens": int(getattr(usage, "prompt_tokens", 0) or 0),
            "completion_tokens": int(getattr(usage, "completion_tokens", 0) or 0),
            "total_tokens": int(getattr(usage, "total_tokens", 0) or 0),
        }
