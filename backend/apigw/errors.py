"""Gestion standardisée des erreurs API avec enveloppes d'erreur.

Ce module traduit les erreurs classées du domaine (`FortuneError.kind`) en statut HTTP et en
enveloppe JSON `{code, message, trace_id, details?}`. La table `ERROR_MAP` est totale sur
`ErrorKind`: un type d'erreur sans correspondance est un défaut de programmation détecté à l'import.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.core.http_constants import (
    HTTP_BAD_GATEWAY,
    HTTP_BAD_REQUEST,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_NOT_IMPLEMENTED,
    HTTP_SERVICE_UNAVAILABLE,
)
from backend.domain.errors import ErrorKind, FortuneError

log = logging.getLogger(__name__)


@dataclass
class ErrorEnvelope:
    """Standard error envelope for API responses."""

    code: str
    message: str
    trace_id: str | None = None
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ErrorMapping:
    """Statut, code et message public associés à un type d'erreur.

    `expose_message`: si vrai, le message de l'exception (déjà destiné à l'utilisateur) remplace le
    message générique.
    """

    status_code: int
    code: str
    message: str
    expose_message: bool = False


class ErrorCodes:
    """Standard error codes for the API."""

    INVALID_BIRTH_INFO = "INVALID_BIRTH_INFO"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"
    TEMPLATE_UNAVAILABLE = "TEMPLATE_UNAVAILABLE"
    BAD_GATEWAY = "BAD_GATEWAY"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


_INVALID_BIRTH = ErrorMapping(
    HTTP_BAD_REQUEST, ErrorCodes.INVALID_BIRTH_INFO, "입력값 검증에 실패했습니다.", expose_message=True
)
_UPSTREAM = ErrorMapping(
    HTTP_BAD_GATEWAY, ErrorCodes.BAD_GATEWAY, "외부 해석 서비스 응답이 올바르지 않습니다."
)

ERROR_MAP: dict[ErrorKind, ErrorMapping] = {
    ErrorKind.MALFORMED_DATE: _INVALID_BIRTH,
    ErrorKind.FUTURE_DATE: _INVALID_BIRTH,
    ErrorKind.TOO_EARLY: _INVALID_BIRTH,
    ErrorKind.MALFORMED_TIME: _INVALID_BIRTH,
    ErrorKind.TEMPLATE_LOAD_ERROR: ErrorMapping(
        HTTP_INTERNAL_SERVER_ERROR, ErrorCodes.TEMPLATE_UNAVAILABLE, "서비스 설정 오류가 발생했습니다."
    ),
    ErrorKind.TRANSPORT_ERROR: _UPSTREAM,
    ErrorKind.INVALID_COMPLETION_SHAPE: _UPSTREAM,
    ErrorKind.ORCHESTRATOR_EXHAUSTED: ErrorMapping(
        HTTP_SERVICE_UNAVAILABLE,
        ErrorCodes.SERVICE_UNAVAILABLE,
        "사주 해석 서비스에 일시적인 문제가 발생했습니다. 잠시 후 다시 시도해주세요.",
    ),
    ErrorKind.UNSUPPORTED_FORTUNE_TYPE: ErrorMapping(
        HTTP_NOT_IMPLEMENTED, ErrorCodes.NOT_IMPLEMENTED, "준비 중인 서비스입니다.", expose_message=True
    ),
    ErrorKind.UNKNOWN_FORTUNE_TYPE: ErrorMapping(
        HTTP_BAD_REQUEST, ErrorCodes.INVALID_ARGUMENT, "지원하지 않는 운세 타입입니다.", expose_message=True
    ),
    ErrorKind.UNCLASSIFIED_INTERNAL: ErrorMapping(
        HTTP_INTERNAL_SERVER_ERROR, ErrorCodes.INTERNAL_ERROR, "서버 내부 오류가 발생했습니다."
    ),
}

_unmapped = set(ErrorKind) - set(ERROR_MAP)
if _unmapped:
    raise RuntimeError(f"unmapped error kinds: {sorted(k.value for k in _unmapped)}")


def map_error(kind: ErrorKind) -> ErrorMapping:
    """Retourne la correspondance HTTP d'un type d'erreur (fonction totale sur `ErrorKind`)."""
    return ERROR_MAP[kind]


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    envelope = ErrorEnvelope(
        code=code,
        message=message,
        trace_id=trace_id,
        details=details,
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "code": envelope.code,
            "message": envelope.message,
            "trace_id": envelope.trace_id,
            **({"details": envelope.details} if envelope.details else {}),
        },
    )


def extract_trace_id(request: Request) -> str | None:
    """Extract trace ID from request headers or request state."""
    trace_id = request.headers.get("X-Trace-ID")
    if trace_id:
        return trace_id

    # Set by RequestIDMiddleware
    return getattr(request.state, "trace_id", None)


def handle_fortune_error(request: Request, exc: FortuneError) -> JSONResponse:
    """Handle classified domain errors with standard envelope."""
    trace_id = extract_trace_id(request)
    mapping = map_error(exc.kind)
    message = exc.message if mapping.expose_message else mapping.message
    level = logging.WARNING if mapping.status_code < HTTP_INTERNAL_SERVER_ERROR else logging.ERROR

    log.log(
        level,
        "Fortune error occurred",
        extra={
            "code": mapping.code,
            "kind": exc.kind.value,
            "error_message": exc.message,
            "status_code": mapping.status_code,
            "trace_id": trace_id,
        },
        exc_info=level >= logging.ERROR,
    )

    details = {"kind": exc.kind.value}
    attempts = getattr(exc, "attempts", None)
    if attempts is not None:
        details["attempts"] = attempts
    return create_error_response(
        status_code=mapping.status_code,
        code=mapping.code,
        message=message,
        trace_id=trace_id,
        details=details,
    )


def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request schema errors (missing field, bad enum) as 400."""
    trace_id = extract_trace_id(request)
    fields: dict[str, str] = {}
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        fields[".".join(loc) or "body"] = str(err.get("msg", "invalid"))

    log.warning(
        "Request validation failed",
        extra={"code": ErrorCodes.VALIDATION_ERROR, "fields": fields, "trace_id": trace_id},
    )

    return create_error_response(
        status_code=HTTP_BAD_REQUEST,
        code=ErrorCodes.VALIDATION_ERROR,
        message=f"입력값 검증에 실패했습니다: {fields}",
        trace_id=trace_id,
        details={"fields": fields},
    )


def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions as UNCLASSIFIED_INTERNAL."""
    trace_id = extract_trace_id(request)
    mapping = map_error(ErrorKind.UNCLASSIFIED_INTERNAL)

    log.error(
        "Unexpected error occurred",
        extra={
            "code": mapping.code,
            "trace_id": trace_id,
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
        },
        exc_info=True,
    )

    return create_error_response(
        status_code=mapping.status_code,
        code=mapping.code,
        message=mapping.message,
        trace_id=trace_id,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attache les gestionnaires d'erreurs à l'application."""
    app.add_exception_handler(FortuneError, handle_fortune_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_generic_exception)
