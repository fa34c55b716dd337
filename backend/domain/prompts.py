"""Gabarits de prompt: chargement unique et substitution des variables.

Un gabarit est un texte contenant des marqueurs `{nom}`. Le rendu remplace en une seule passe les
marqueurs connus et laisse les autres intacts, ce qui permet de faire évoluer les gabarits sans
casser le code.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from pathlib import Path

import structlog

from backend.domain.entities import BirthRecord
from backend.domain.errors import TemplateLoadError

log = structlog.get_logger(__name__)

PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")
TIME_UNKNOWN = "시간 미상"


@dataclass(frozen=True)
class PromptTemplate:
    """Gabarit immuable chargé une fois au démarrage."""

    name: str
    text: str
    source: str | None = None

    @property
    def placeholders(self) -> frozenset[str]:
        return frozenset(PLACEHOLDER_RE.findall(self.text))


@dataclass(frozen=True)
class RenderedPrompt:
    """Prompt entièrement substitué, créé pour une requête."""

    template_name: str
    text: str


def load_template(path: str | Path, name: str | None = None) -> PromptTemplate:
    """Charge un gabarit depuis le disque.

    Lève `TemplateLoadError` si le fichier est absent, illisible ou vide. Cette erreur est fatale:
    elle doit survenir au démarrage, jamais pendant le traitement d'une requête.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as err:
        log.error("prompt_template_load_failed", path=str(p))
        raise TemplateLoadError("프롬프트 템플릿을 로드할 수 없습니다", cause=err) from err
    if not text.strip():
        raise TemplateLoadError(f"프롬프트 템플릿이 비어 있습니다: {p.name}")
    template = PromptTemplate(name=name or p.stem, text=text, source=str(p))
    log.info("prompt_template_loaded", name=template.name, placeholders=sorted(template.placeholders))
    return template


def render(template: PromptTemplate, variables: Mapping[str, str]) -> RenderedPrompt:
    """Substitue les marqueurs connus en une seule passe (le texte inséré n'est pas ré-analysé)."""

    def _sub(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in variables:
            return str(variables[key])
        return match.group(0)

    return RenderedPrompt(template_name=template.name, text=PLACEHOLDER_RE.sub(_sub, template.text))


def format_birth_time(raw: str | None) -> str:
    """Met en forme l'heure de naissance pour le prompt.

    - absente / "unknown" -> "시간 미상"
    - "HH:mm" -> "HH시 MM분" (deux chiffres)
    - heure seule ("9") -> "09시 00분"
    - toute autre forme -> chaîne brute renvoyée telle quelle
    """
    if raw is None or raw.strip().lower() in ("", "unknown"):
        return TIME_UNKNOWN
    value = raw.strip()
    try:
        if ":" in value:
            parts = value.split(":")
            hour = int(parts[0].strip())
            minute = int(parts[1].strip()) if len(parts) > 1 else 0
        else:
            hour, minute = int(value), 0
    except ValueError:
        log.warning("birth_time_format_fallback", raw=raw)
        return raw
    return f"{hour:02d}시 {minute:02d}분"


def build_prompt_variables(record: BirthRecord, today: date | None = None) -> dict[str, str]:
    """Construit les variables de rendu à partir des données de naissance."""
    return {
        "gender": record.gender.label,
        "birthDate": record.birth_date,
        "birthTime": format_birth_time(record.birth_time),
        "today": (today or date.today()).isoformat(),
    }
