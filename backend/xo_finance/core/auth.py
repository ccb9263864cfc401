import logging
import threading
from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException
from jwt import PyJWKClient

from xo_finance.core.abilities import ROLE_SUPERADMIN, ROLE_USER, AbilitySet, define_abilities_for
from xo_finance.core.config import get_settings

logger = logging.getLogger(__name__)

ALLOWED_ROLES = {ROLE_USER, ROLE_SUPERADMIN}

# Thread-safe JWKS client cache (initialised lazily, lives for process lifetime).
_jwks_client: Optional[PyJWKClient] = None
_jwks_lock = threading.Lock()


def _get_jwks_client(jwks_url: str) -> PyJWKClient:
    """Return a cached PyJWKClient (with built-in key caching)."""
    global _jwks_client
    if _jwks_client is not None:
        return _jwks_client
    with _jwks_lock:
        if _jwks_client is not None:
            return _jwks_client
        _jwks_client = PyJWKClient(jwks_url, cache_keys=True, lifespan=3600)
        return _jwks_client


@dataclass
class CurrentUser:
    id: str
    role: str = ROLE_USER
    email: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_superadmin(self) -> bool:
        return self.role == ROLE_SUPERADMIN


def _extract_role(payload: dict) -> Optional[str]:
    # SECURITY: role must come only from server-managed app_metadata.
    # user_metadata is user-editable and cannot be trusted for RBAC.
    app_meta = payload.get("app_metadata") or {}
    raw = app_meta.get("role")
    if raw is None:
        return ROLE_USER
    role = str(raw).strip().lower()
    if role not in ALLOWED_ROLES:
        return None
    return role


def _decode_options(settings):
    audience = (settings.auth_jwt_audience or "").strip()
    decode_kwargs = {}
    options = {}
    if audience:
        decode_kwargs["audience"] = audience
        options["verify_aud"] = True
    else:
        options["verify_aud"] = False
    return decode_kwargs, options


def _try_secret(token: str, settings, decode_kwargs: dict, options: dict):
    try:
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=["HS256"],
            options=options,
            **decode_kwargs,
        )
    except jwt.InvalidTokenError:
        return None


def _try_jwks(token: str, settings, decode_kwargs: dict, options: dict):
    jwks_url = (settings.auth_jwks_url or "").strip()
    if not jwks_url:
        return None
    try:
        client = _get_jwks_client(jwks_url)
        signing_key = client.get_signing_key_from_jwt(token)
        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["ES256", "RS256"],
            options=options,
            **decode_kwargs,
        )
    except Exception as exc:
        logger.debug("JWKS verification failed: %s", exc)
        return None


def _decode_token(token: str) -> dict:
    settings = get_settings()
    if not settings.auth_jwt_secret and not settings.auth_jwks_url:
        raise HTTPException(500, "Erro de configuração do servidor.")

    decode_kwargs, options = _decode_options(settings)

    try:
        header = jwt.get_unverified_header(token)
    except jwt.DecodeError:
        raise HTTPException(401, "Token inválido")

    payload = None
    if header.get("alg") == "HS256" and settings.auth_jwt_secret:
        payload = _try_secret(token, settings, decode_kwargs, options)
    if payload is None:
        payload = _try_jwks(token, settings, decode_kwargs, options)
    if payload is None:
        raise HTTPException(401, "Token inválido")
    return payload


def _user_from_payload(payload: dict) -> CurrentUser:
    user_id = payload.get("sub") or payload.get("user_id")
    if not user_id:
        raise HTTPException(401, "Token inválido")

    role = _extract_role(payload)
    if not role:
        raise HTTPException(403, "Acesso negado.")

    return CurrentUser(
        id=str(user_id),
        role=role,
        email=payload.get("email"),
        name=payload.get("name"),
    )


def get_current_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> CurrentUser:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(401, "Autenticação necessária")

    token = authorization.split(" ", 1)[1].strip()
    return _user_from_payload(_decode_token(token))


def get_optional_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> Optional[CurrentUser]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return get_current_user(authorization)


def get_abilities(user: CurrentUser = Depends(get_current_user)) -> AbilitySet:
    return define_abilities_for(user)


def require_roles(*roles: str):
    def _dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(403, "Acesso negado.")
        return user

    return _dependency
