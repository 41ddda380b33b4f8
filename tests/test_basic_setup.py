"""
Basic setup tests to verify the test environment and app wiring.
"""

from datetime import timedelta

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from bloodnet.config import settings
from bloodnet.middlewares.rate_limit_middleware import RateLimitMiddleware
from bloodnet.schemas.base_schema import UserRole
from bloodnet.utils.exceptions import AuthenticationError
from bloodnet.utils.security import TokenManager, identity_from_token


def test_settings_loaded_for_tests():
    """The test environment overrides are in effect"""
    assert settings.ENVIRONMENT == "test"
    assert settings.ENABLE_ADMIN is False
    assert settings.DATABASE_URL.startswith("sqlite+aiosqlite")


async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_openapi_marks_protected_routes(client):
    schema = (await client.get("/openapi.json")).json()

    assert "BearerAuth" in schema["components"]["securitySchemes"]
    assert "security" not in schema["paths"]["/api/blood-inventory/availability"]["get"]
    assert {"BearerAuth": []} in schema["paths"]["/api/blood-inventory/expired"]["get"]["security"]


class TestTokens:
    def test_round_trip_identity(self):
        token = TokenManager.create_access_token({"sub": "admin-7", "role": "SYSTEM_ADMIN"})

        identity = identity_from_token(token)

        assert identity.user_id == "admin-7"
        assert identity.role == UserRole.SYSTEM_ADMIN
        assert identity.has_role(UserRole.SYSTEM_ADMIN, UserRole.HOSPITAL_ADMIN)

    def test_missing_role_defaults_to_user(self):
        token = TokenManager.create_access_token({"sub": "someone"})
        assert identity_from_token(token).role == UserRole.USER

    def test_expired_token(self):
        token = TokenManager.create_access_token({"sub": "x"}, expires_delta=timedelta(seconds=-1))
        with pytest.raises(AuthenticationError):
            identity_from_token(token)

    def test_unknown_role(self):
        token = TokenManager.create_access_token({"sub": "x", "role": "SUPERUSER"})
        with pytest.raises(AuthenticationError):
            identity_from_token(token)


class TestRateLimit:
    @staticmethod
    def _app():
        app = FastAPI()
        app.add_middleware(RateLimitMiddleware, max_requests=2, emergency_max_requests=3)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        @app.get("/emergency/ping")
        async def emergency_ping():
            return {"ok": True}

        return app

    async def test_limits_regular_requests(self):
        async with AsyncClient(transport=ASGITransport(app=self._app()), base_url="http://test") as c:
            statuses = [(await c.get("/ping")).status_code for _ in range(3)]
            emergency = await c.get("/emergency/ping")

        assert statuses == [200, 200, 429]
        assert emergency.status_code == 200

    async def test_rejection_carries_retry_after(self):
        async with AsyncClient(transport=ASGITransport(app=self._app()), base_url="http://test") as c:
            for _ in range(3):
                await c.get("/emergency/ping")
            response = await c.get("/emergency/ping")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert response.json()["error"] == "rate_limit_exceeded"

    def test_idle_clients_are_forgotten(self):
        limiter = RateLimitMiddleware(FastAPI())
        limiter.requests = {
            "10.0.0.1": [1000.0, 1030.0],
            "emergency:10.0.0.1": [1000.0],
            "10.0.0.2": [1050.0, 1070.0],
        }

        limiter._prune(1075.0)

        assert limiter.requests == {"10.0.0.1": [1030.0], "10.0.0.2": [1050.0, 1070.0]}

        limiter._prune(2000.0)

        assert limiter.requests == {}
