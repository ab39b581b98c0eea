from __future__ import annotations

import logging
import threading

import pytest
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.testclient import TestClient
from pydantic import BaseModel

from activity_throttle.config import Settings
from activity_throttle.keyed import KeyedCounter
from activity_throttle.web import ThrottleGuard, build_guard, client_host


class LoginRequest(BaseModel):
    email: str


def _settings(**overrides) -> Settings:
    values = dict(window_ms=60_000, limit=5, lockout_ms=180_000, max_keys=None, scope="")
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def guard(clock) -> ThrottleGuard:
    return build_guard(_settings(), clock=clock)


@pytest.fixture
def api_client(guard) -> TestClient:
    app = FastAPI()

    @app.post("/login", responses=guard.responses)
    def login(payload: LoginRequest) -> dict[str, str]:
        guard.check(payload.email)
        return {"status": "ok"}

    @app.get("/ping", dependencies=[Depends(guard)])
    def ping() -> dict[str, str]:
        return {"status": "ok"}

    return TestClient(app)


def test_login_is_throttled_per_email(api_client):
    for _ in range(5):
        response = api_client.post("/login", json={"email": "john@example.com"})
        assert response.status_code == 200

    response = api_client.post("/login", json={"email": "john@example.com"})
    assert response.status_code == 429
    assert response.json() == {"detail": "rate limited"}
    assert response.headers["Retry-After"] == "180"

    response = api_client.post("/login", json={"email": "jane@example.com"})
    assert response.status_code == 200


def test_retry_after_counts_down(api_client, clock):
    for _ in range(6):
        api_client.post("/login", json={"email": "john@example.com"})
    clock.advance(179_500)
    response = api_client.post("/login", json={"email": "john@example.com"})
    assert response.status_code == 429
    assert response.headers["Retry-After"] == "1"

    clock.advance(500)
    response = api_client.post("/login", json={"email": "john@example.com"})
    assert response.status_code == 200


def test_dependency_throttles_by_client_host(api_client, guard):
    for _ in range(5):
        assert api_client.get("/ping").status_code == 200
    assert api_client.get("/ping").status_code == 429
    assert "testclient" in guard.counter


def test_scope_prefixes_keys(clock):
    guard = build_guard(_settings(limit=1, scope="signin"), clock=clock)
    guard.check("john@example.com")
    assert ("signin", "john@example.com") in guard.counter
    assert "john@example.com" not in guard.counter


def test_build_guard_honours_max_keys(clock):
    guard = build_guard(_settings(max_keys=2), clock=clock)
    for email in ("a@example.com", "b@example.com", "c@example.com"):
        guard.check(email)
    assert len(guard.counter) == 2


def test_throttled_attempt_is_logged(clock, caplog):
    caplog.set_level(logging.WARNING, logger="activity_throttle.web")
    guard = ThrottleGuard(KeyedCounter(1000, 0, 1000, clock=clock), key_func=client_host)
    with pytest.raises(HTTPException) as excinfo:
        guard.check("mallory@example.com")
    assert excinfo.value.status_code == 429
    assert "throttled attempt" in caplog.text


def test_openapi_documents_throttled_response(api_client):
    schema = api_client.get("/openapi.json").json()
    assert "429" in schema["paths"]["/login"]["post"]["responses"]


def test_guard_instance_works_as_route_dependency():
    guard = ThrottleGuard(KeyedCounter(1000, 5, 1000))
    app = FastAPI()

    @app.get("/ping", dependencies=[Depends(guard)])
    def ping() -> dict[str, str]:
        return {"status": "ok"}

    response = TestClient(app).get("/ping")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_concurrent_checks_admit_exactly_limit(clock):
    guard = ThrottleGuard(KeyedCounter(60_000, 5, 180_000, clock=clock))
    barrier = threading.Barrier(20)
    outcomes: list[bool] = []
    outcomes_lock = threading.Lock()

    def attempt() -> None:
        barrier.wait()
        try:
            guard.check("john@example.com")
            admitted = True
        except HTTPException:
            admitted = False
        with outcomes_lock:
            outcomes.append(admitted)

    threads = [threading.Thread(target=attempt) for _ in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(outcomes) == 20
    assert outcomes.count(True) == 5


def test_client_host_without_client_address():
    request = Request({"type": "http", "headers": []})
    assert client_host(request) == "unknown"


def test_retry_after_is_at_least_one_second(clock):
    guard = ThrottleGuard(KeyedCounter(1000, 0, 0, clock=clock))
    with pytest.raises(HTTPException) as excinfo:
        guard.check("john@example.com")
    assert excinfo.value.status_code == 429
    assert excinfo.value.headers == {"Retry-After": "1"}
