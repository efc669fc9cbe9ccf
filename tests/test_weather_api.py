from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from smartweather.api.weather import classify_error, get_weather_agent
from smartweather.core.exceptions import (
    CredentialMissingError,
    OracleError,
    OracleResponseInvalidError,
)
from smartweather.main import app
from smartweather.models.schemas import CurrentWeather, WeatherSnapshot


def _snapshot(name: str = "台北市") -> WeatherSnapshot:
    return WeatherSnapshot(
        locationName=name,
        current=CurrentWeather(
            temp=28, condition="晴", humidity=60, windSpeed=10, feelsLike=30, uvIndex=8
        ),
        forecast=[],
        aiInsight="晴朗",
        clothingAdvice="短袖",
        activityAdvice="適合散步",
        lastUpdated="下午3:04:05",
    )


class _StubAgent:
    def __init__(self, result=None, error: Exception | None = None, healthy: bool = True) -> None:
        self.result = result
        self.error = error
        self.healthy = healthy
        self.requests: list[tuple] = []

    async def fetch_weather(self, location, search_enabled=True, remaining_retries=None):
        self.requests.append((location, search_enabled))
        if self.error is not None:
            raise self.error
        return self.result

    async def test_connection(self) -> bool:
        return self.healthy


@pytest.fixture()
def stub_agent():
    agent = _StubAgent(result=_snapshot())
    app.dependency_overrides[get_weather_agent] = lambda: agent
    yield agent
    app.dependency_overrides.clear()


def test_health() -> None:
    client = TestClient(app)
    assert client.get("/health").json() == {"status": "ok"}


def test_weather_by_coordinates(stub_agent) -> None:
    client = TestClient(app)

    resp = client.get("/api/weather", params={"lat": 25.03, "lng": 121.56})

    assert resp.status_code == 200
    body = resp.json()
    assert body["locationName"] == "台北市"
    assert body["isRealtime"] is False
    assert body["sources"] == []

    location, search_enabled = stub_agent.requests[0]
    assert location.coordinates.lat == 25.03
    assert location.coordinates.lng == 121.56
    assert search_enabled is True


def test_weather_by_place_name_without_search(stub_agent) -> None:
    client = TestClient(app)

    resp = client.get("/api/weather", params={"q": "台南", "search": "false"})

    assert resp.status_code == 200
    location, search_enabled = stub_agent.requests[0]
    assert location.place_name == "台南"
    assert search_enabled is False


def test_weather_defaults_to_taipei(stub_agent) -> None:
    client = TestClient(app)

    client.get("/api/weather")

    location, _ = stub_agent.requests[0]
    assert location.place_name == "台北市"


@pytest.mark.parametrize(
    "params",
    [
        {"q": "台南", "lat": 1.0, "lng": 2.0},
        {"lat": 25.03},
        {"q": "   "},
    ],
)
def test_weather_rejects_bad_location(stub_agent, params) -> None:
    client = TestClient(app)

    resp = client.get("/api/weather", params=params)

    assert resp.status_code == 422
    assert stub_agent.requests == []


@pytest.mark.parametrize(
    "error, status, error_type",
    [
        (OracleError("Gemini API error 429: RESOURCE_EXHAUSTED", status_code=429), 429, "quota"),
        (OracleError("Gemini API error 403: PERMISSION_DENIED", status_code=403), 403, "auth"),
        (OracleError("Gemini API error 404: NOT_FOUND", status_code=404), 404, "not_found"),
        (CredentialMissingError(), 503, "credential_missing"),
        (OracleResponseInvalidError("Gemini returned an empty reply"), 502, "invalid_response"),
        (OracleError("Gemini request failed: timed out"), 502, "general"),
    ],
)
def test_weather_errors_are_classified(stub_agent, error, status, error_type) -> None:
    stub_agent.error = error
    client = TestClient(app)

    resp = client.get("/api/weather", params={"q": "台北市"})

    assert resp.status_code == status
    assert resp.json()["type"] == error_type


def test_oracle_diagnostics(stub_agent) -> None:
    client = TestClient(app)

    assert client.get("/api/diagnostics/oracle").json() == {"ok": True}

    stub_agent.healthy = False
    assert client.get("/api/diagnostics/oracle").json() == {"ok": False}


def test_classify_quota_includes_cooldown() -> None:
    error = classify_error(OracleError("Gemini API error 429: quota"))

    assert error.type == "quota"
    assert error.code == 429
    assert error.cooldownSeconds == 60


def test_classify_general_keeps_raw_message() -> None:
    error = classify_error(RuntimeError("socket closed"))

    assert error.type == "general"
    assert error.detail == "socket closed"
    assert error.code is None


def test_invalid_reply_is_not_mistaken_for_quota(stub_agent) -> None:
    stub_agent.error = OracleResponseInvalidError(
        "Gemini reply is not valid JSON: Expecting ',' delimiter: line 1 column 430 (char 429)"
    )
    client = TestClient(app)

    resp = client.get("/api/weather", params={"q": "台北市"})

    assert resp.status_code == 502
    body = resp.json()
    assert body["type"] == "invalid_response"
    assert body["cooldownSeconds"] is None


def test_run_serves_app_with_uvicorn(monkeypatch) -> None:
    from smartweather import main

    seen: dict = {}
    monkeypatch.setattr(main.uvicorn, "run", lambda target, **kwargs: seen.update(target=target, **kwargs))

    main.run()

    assert seen["target"] == "smartweather.main:app"
    assert seen["port"] == main.settings.SERVER_PORT
    assert seen["log_level"] == "info"
