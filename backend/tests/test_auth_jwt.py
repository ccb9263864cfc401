import jwt
import pytest
from fastapi import HTTPException

from xo_finance.core.auth import get_current_user, get_optional_user
from xo_finance.core.config import get_settings


def _make_token(
    secret: str,
    aud: str,
    *,
    app_role: str | None = "superadmin",
    user_role: str | None = None,
) -> str:
    app_meta = {}
    if app_role is not None:
        app_meta["role"] = app_role
    user_meta = {}
    if user_role is not None:
        user_meta["role"] = user_role

    payload = {
        "sub": "00000000-0000-0000-0000-000000000123",
        "email": "admin@test.local",
        "name": "Ana Admin",
        "app_metadata": app_meta,
        "user_metadata": user_meta,
        "aud": aud,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def jwt_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_JWT_SECRET", "test-secret")
    monkeypatch.setenv("AUTH_JWT_AUDIENCE", "authenticated")
    get_settings.cache_clear()


def test_get_current_user_accepts_matching_audience(jwt_env):
    token = _make_token("test-secret", "authenticated")
    user = get_current_user(authorization=f"Bearer {token}")
    assert user.role == "superadmin"
    assert user.email == "admin@test.local"
    assert user.name == "Ana Admin"


def test_get_current_user_rejects_wrong_audience(jwt_env):
    token = _make_token("test-secret", "other")
    with pytest.raises(HTTPException) as exc:
        get_current_user(authorization=f"Bearer {token}")
    assert exc.value.status_code == 401


def test_get_current_user_rejects_wrong_secret(jwt_env):
    token = _make_token("another-secret", "authenticated")
    with pytest.raises(HTTPException) as exc:
        get_current_user(authorization=f"Bearer {token}")
    assert exc.value.status_code == 401


def test_missing_role_defaults_to_user(jwt_env):
    token = _make_token("test-secret", "authenticated", app_role=None)
    assert get_current_user(authorization=f"Bearer {token}").role == "user"


def test_get_current_user_ignores_user_metadata_role(jwt_env):
    token = _make_token("test-secret", "authenticated", app_role=None, user_role="superadmin")
    assert get_current_user(authorization=f"Bearer {token}").role == "user"


def test_unknown_role_is_rejected(jwt_env):
    token = _make_token("test-secret", "authenticated", app_role="ADMIN")
    with pytest.raises(HTTPException) as exc:
        get_current_user(authorization=f"Bearer {token}")
    assert exc.value.status_code == 403


def test_role_claim_is_case_insensitive(jwt_env):
    token = _make_token("test-secret", "authenticated", app_role="SuperAdmin")
    assert get_current_user(authorization=f"Bearer {token}").role == "superadmin"


def test_missing_or_malformed_header(jwt_env):
    with pytest.raises(HTTPException) as exc:
        get_current_user(authorization=None)
    assert exc.value.status_code == 401

    with pytest.raises(HTTPException) as exc:
        get_current_user(authorization="Bearer not-a-jwt")
    assert exc.value.status_code == 401

    assert get_optional_user(authorization=None) is None


def test_unconfigured_auth_is_a_server_error(monkeypatch):
    monkeypatch.delenv("SUPABASE_JWT_SECRET", raising=False)
    monkeypatch.delenv("AUTH_JWT_SECRET", raising=False)
    monkeypatch.delenv("AUTH_JWKS_URL", raising=False)
    get_settings.cache_clear()

    token = _make_token("test-secret", "authenticated")
    with pytest.raises(HTTPException) as exc:
        get_current_user(authorization=f"Bearer {token}")
    assert exc.value.status_code == 500
