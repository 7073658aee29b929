"""Rate limit en memoria y su aplicación a rutas públicas de auth."""
from fastapi.testclient import TestClient

from app.core.rate_limit import RateLimiter
from app.main import create_app
from conftest import API, make_settings


class FakeMonotonic:
    def __init__(self) -> None:
        self.t = 1000.0

    def __call__(self) -> float:
        return self.t


def test_blocks_after_limit():
    rl = RateLimiter()
    key = ("1.2.3.4", "/auth/login")
    assert all(rl.allow(key, limit=3) for _ in range(3))
    assert not rl.allow(key, limit=3)


def test_window_slides():
    clock = FakeMonotonic()
    rl = RateLimiter(clock=clock)
    key = ("1.2.3.4", "/auth/login")
    assert rl.allow(key, limit=1, window_seconds=60)
    assert not rl.allow(key, limit=1, window_seconds=60)
    clock.t += 60
    assert rl.allow(key, limit=1, window_seconds=60)


def test_keys_are_independent():
    rl = RateLimiter()
    assert rl.allow(("ip", "/a"), limit=1)
    assert rl.allow(("ip", "/b"), limit=1)
    rl.reset()
    assert rl.allow(("ip", "/a"), limit=1)


def test_login_route_returns_429(container):
    container.settings = make_settings(rate_limit_enabled=True, auth_rate_limit_per_min=2)
    client = TestClient(create_app(container.settings, container))
    body = {"emailAddress": "ghost@example.com", "password": "x"}

    codes = [client.post(f"{API}/auth/login", json=body).status_code for _ in range(3)]

    assert codes == [401, 401, 429]
    r = client.post(f"{API}/auth/login", json=body)
    assert r.json()["error"] == "RATE_LIMITED"


def test_idle_keys_are_purged():
    clock = FakeMonotonic()
    rl = RateLimiter(clock=clock)
    for i in range(50):
        rl.allow((f"10.0.0.{i}", "/auth/login"), limit=5, window_seconds=60)
    assert rl.tracked_keys() == 50

    clock.t += 60
    assert rl.allow(("10.0.1.1", "/auth/login"), limit=5, window_seconds=60)
    assert rl.tracked_keys() == 1
