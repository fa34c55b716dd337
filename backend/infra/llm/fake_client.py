"""Client de complétion factice et déterministe (dev local, démonstrations)."""

from __future__ import annotations

from backend.domain.prompts import RenderedPrompt
from backend.infra.llm.base import ChatClient, RawCompletion


class FakeChatClient(ChatClient):
    """Renvoie une complétion au format chat.completions construite à partir du prompt."""

    model = "fake"

    def __init__(self, reply: str | None = None) -> None:
        self.reply = reply

    def complete(self, prompt: RenderedPrompt) -> RawCompletion:
        text = self.reply or f"FAKE_FORTUNE[{prompt.template_name}]: {prompt.text[:80]}".strip()
        body = {"choices": [{"message": {"role": "assistant", "content": text}}]}
        return RawCompletion(body=body, model=self.model, latency_ms=0)
