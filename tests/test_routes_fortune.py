"""
Tests pour la route d'interprétation `POST /fortune/analyze`.

Le container global est remplacé par un container construit avec un client scénarisé, afin de
vérifier les réponses minimales/étendues et la correspondance des erreurs classées en statuts HTTP.
"""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from backend.app.main import app
from backend.core.container import Container
from backend.core.http_constants import (
    HTTP_BAD_GATEWAY,
    HTTP_BAD_REQUEST,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_NOT_IMPLEMENTED,
    HTTP_OK,
    HTTP_SERVICE_UNAVAILABLE,
)
from backend.core.settings import Settings
from backend.domain.errors import FortuneError, TransportError
from tests.fakes import ScriptedChatClient, completion

ROUTE = "/fortune/analyze"
PAYLOAD = {
    "birthDate": "1990-05-20",
    "birthTime": "14:30",
    "gender": "MALE",
    "fortuneType": "SAJU",
}
MAX_ATTEMPTS = 3


def _container(client: ScriptedChatClient, **settings_kwargs) -> Container:
    settings = Settings(LLM_PROVIDER="fake", LLM_BACKOFF_MS=0, **settings_kwargs)
    return Container(settings=settings, chat_client=client)


@pytest.fixture
def scripted():
    """Client scénarisé renvoyant « good fortune »."""
    return ScriptedChatClient([completion("good fortune")])


@pytest.fixture
def client(scripted):
    """TestClient avec le container remplacé par un container scénarisé."""
    with patch("backend.api.routes_fortune.container", _container(scripted)):
        yield TestClient(app)


def test_analyze_minimal_response(client, scripted) -> None:
    """Teste la variante minimale: fortuneType, result, createdAt."""
    r = client.post(ROUTE, json=PAYLOAD)

    assert r.status_code == HTTP_OK
    body = r.json()
    assert set(body) == {"fortuneType", "result", "createdAt"}
    assert body["fortuneType"] == "사주"
    assert body["result"] == "good fortune"
    assert scripted.calls == 1


def test_analyze_extended_response(scripted) -> None:
    """Teste la variante étendue avec le rappel des informations de naissance."""
    container = _container(scripted, RESPONSE_INCLUDE_BIRTH_INFO=True)
    with patch("backend.api.routes_fortune.container", container):
        r = TestClient(app).post(ROUTE, json=PAYLOAD)

    assert r.status_code == HTTP_OK
    assert r.json()["birthInfo"] == {
        "birthDate": "1990-05-20",
        "birthTime": "14시 30분",
        "gender": "남성",
    }


def test_analyze_unknown_birth_time(client, scripted) -> None:
    """Teste qu'une heure absente est acceptée et rendue par le marqueur dédié."""
    payload = {k: v for k, v in PAYLOAD.items() if k != "birthTime"}
    r = client.post(ROUTE, json=payload)

    assert r.status_code == HTTP_OK
    assert "시간 미상" in scripted.prompts[0].text


@pytest.mark.parametrize(
    ("birth_date", "birth_time"),
    [
        ("1990/05/20", "14:30"),
        ("2999-01-01", "14:30"),
        ("1899-12-31", "14:30"),
        ("1990-05-20", "25:00"),
    ],
)
def test_analyze_invalid_birth_info(client, scripted, birth_date, birth_time) -> None:
    """Teste le rejet 400 des données de naissance invalides, sans appel LLM."""
    r = client.post(ROUTE, json={**PAYLOAD, "birthDate": birth_date, "birthTime": birth_time})

    assert r.status_code == HTTP_BAD_REQUEST
    body = r.json()
    assert body["code"] == "INVALID_BIRTH_INFO"
    assert body["message"]
    assert scripted.calls == 0


def test_analyze_tarot_not_implemented(client, scripted) -> None:
    """Teste que TAROT renvoie 501 sans appel externe."""
    r = client.post(ROUTE, json={**PAYLOAD, "fortuneType": "TAROT"})

    assert r.status_code == HTTP_NOT_IMPLEMENTED
    assert r.json()["code"] == "NOT_IMPLEMENTED"
    assert r.json()["details"]["kind"] == "unsupported_fortune_type"
    assert scripted.calls == 0


def test_analyze_unknown_type(client) -> None:
    """Teste qu'un type inconnu renvoie 400 en nommant la valeur reçue."""
    r = client.post(ROUTE, json={**PAYLOAD, "fortuneType": "HOROSCOPE"})

    assert r.status_code == HTTP_BAD_REQUEST
    assert r.json()["code"] == "INVALID_ARGUMENT"
    assert "HOROSCOPE" in r.json()["message"]


def test_analyze_exhausted_retries() -> None:
    """Teste que l'épuisement des retries renvoie 503 avec le nombre de tentatives."""
    scripted = ScriptedChatClient([TransportError("down")])
    with patch("backend.api.routes_fortune.container", _container(scripted)):
        r = TestClient(app).post(ROUTE, json=PAYLOAD)

    assert r.status_code == HTTP_SERVICE_UNAVAILABLE
    body = r.json()
    assert body["code"] == "SERVICE_UNAVAILABLE"
    assert body["details"]["attempts"] == MAX_ATTEMPTS
    assert scripted.calls == MAX_ATTEMPTS


def test_analyze_upstream_error_not_retried_past_service() -> None:
    """Teste qu'une erreur de transport remontée telle quelle donne 502."""
    container = Mock()
    container.fortune_service.interpret.side_effect = TransportError("boom")
    with patch("backend.api.routes_fortune.container", container):
        r = TestClient(app).post(ROUTE, json=PAYLOAD)

    assert r.status_code == HTTP_BAD_GATEWAY
    assert r.json()["code"] == "BAD_GATEWAY"


@pytest.mark.parametrize(
    "payload",
    [
        {k: v for k, v in PAYLOAD.items() if k != "birthDate"},
        {**PAYLOAD, "gender": "OTHER"},
        {k: v for k, v in PAYLOAD.items() if k != "fortuneType"},
    ],
)
def test_analyze_schema_errors(client, payload) -> None:
    """Teste que les erreurs de schéma (champ manquant, genre inconnu) renvoient 400."""
    r = client.post(ROUTE, json=payload)

    assert r.status_code == HTTP_BAD_REQUEST
    assert r.json()["code"] == "VALIDATION_ERROR"
    assert r.json()["details"]["fields"]


def test_analyze_unexpected_error() -> None:
    """Teste qu'une exception inattendue renvoie 500 sans détail interne."""
    container = Mock()
    container.fortune_service.interpret.side_effect = RuntimeError("secret internals")
    with patch("backend.api.routes_fortune.container", container):
        r = TestClient(app, raise_server_exceptions=False).post(ROUTE, json=PAYLOAD)

    assert r.status_code == HTTP_INTERNAL_SERVER_ERROR
    assert r.json()["code"] == "INTERNAL_ERROR"
    assert "secret" not in r.json()["message"]


def test_request_id_propagated(client) -> None:
    """Teste la propagation de X-Request-ID dans l'en-tête et l'enveloppe d'erreur."""
    headers = {"X-Request-ID": "req-123"}
    ok = client.post(ROUTE, json=PAYLOAD, headers=headers)
    assert ok.headers["X-Request-ID"] == "req-123"
    assert "X-Process-Time-ms" in ok.headers

    err = client.post(ROUTE, json={**PAYLOAD, "fortuneType": "TAROT"}, headers=headers)
    assert err.json()["trace_id"] == "req-123"


def test_request_id_generated(client) -> None:
    """Teste qu'un identifiant est généré quand l'en-tête est absent."""
    r = client.post(ROUTE, json=PAYLOAD)
    assert r.headers["X-Request-ID"]


def test_analyze_unclassified_error_hides_details() -> None:
    """Teste qu'une erreur interne classée par le service renvoie 500 sans la cause."""
    container = Mock()
    container.fortune_service.interpret.side_effect = FortuneError(
        "서버 내부 오류가 발생했습니다.", cause=ValueError("secret internals")
    )
    with patch("backend.api.routes_fortune.container", container):
        r = TestClient(app).post(ROUTE, json=PAYLOAD)

    assert r.status_code == HTTP_INTERNAL_SERVER_ERROR
    assert r.json()["code"] == "INTERNAL_ERROR"
    assert r.json()["details"]["kind"] == "unclassified_internal"
    assert "secret" not in r.text
