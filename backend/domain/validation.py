"""Validation des données de naissance.

Fonction pure, sans I/O: le résultat est une valeur étiquetée (`ValidationResult`) plutôt qu'une
exception, afin que l'appelant puisse traiter chaque cas explicitement.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from backend.domain.entities import BirthRecord
from backend.domain.errors import BirthInfoValidationError, ErrorKind

MIN_BIRTH_YEAR = 1900

_DATE_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
_TIME_RE = re.compile(r"^([0-9]{2}):([0-9]{2})$")
_MAX_HOUR = 23
_MAX_MINUTE = 59

MESSAGES = {
    ErrorKind.MALFORMED_DATE: "생년월일 형식이 올바르지 않습니다. YYYY-MM-DD 형식으로 입력해주세요.",
    ErrorKind.FUTURE_DATE: "생년월일이 미래 날짜일 수 없습니다.",
    ErrorKind.TOO_EARLY: "{year}년 이후 출생자만 해석 가능합니다.",
    ErrorKind.MALFORMED_TIME: "생시는 HH:mm 형식이어야 합니다.",
}


@dataclass(frozen=True)
class ValidationResult:
    """Issue de la validation: succès (`error is None`) ou type d'échec + message."""

    error: ErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        """Convertit un échec en `BirthInfoValidationError`; ne fait rien en cas de succès."""
        if self.error is not None:
            raise BirthInfoValidationError(self.error, self.message)


VALID = ValidationResult()


def _fail(kind: ErrorKind, **fmt) -> ValidationResult:
    return ValidationResult(error=kind, message=MESSAGES[kind].format(**fmt))


def parse_birth_date(raw: str) -> date | None:
    """Parse strictement `YYYY-MM-DD`; retourne None si le format ou la date est invalide."""
    if not isinstance(raw, str) or not _DATE_RE.match(raw):
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def is_valid_birth_time(raw: str) -> bool:
    """Vérifie `HH:mm` avec heure 0..23 et minute 0..59."""
    m = _TIME_RE.match(raw.strip())
    if not m:
        return False
    hour, minute = int(m.group(1)), int(m.group(2))
    return hour <= _MAX_HOUR and minute <= _MAX_MINUTE


def validate_birth_record(
    record: BirthRecord,
    today: date | None = None,
    min_year: int = MIN_BIRTH_YEAR,
) -> ValidationResult:
    """Valide la date et l'heure de naissance.

    Paramètres:
    - record: données de naissance à contrôler.
    - today: date de référence (par défaut `date.today()`), injectable pour les tests.
    - min_year: première année acceptée.

    Retour: `VALID` ou un `ValidationResult` portant le type d'échec.
    """
    birth_date = parse_birth_date(record.birth_date)
    if birth_date is None:
        return _fail(ErrorKind.MALFORMED_DATE)
    if birth_date > (today or date.today()):
        return _fail(ErrorKind.FUTURE_DATE)
    if birth_date.year < min_year:
        return _fail(ErrorKind.TOO_EARLY, year=min_year)
    if record.has_time and not is_valid_birth_time(record.birth_time or ""):
        return _fail(ErrorKind.MALFORMED_TIME)
    return VALID
