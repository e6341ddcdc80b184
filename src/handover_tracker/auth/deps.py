"""
handover_tracker.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a typed `Principal`.
- Enforce role checks via reusable dependency factories.
- Verify the shared cron secret used by scheduled jobs.
"""

from __future__ import annotations

import hmac

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.status import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN

from handover_tracker.auth.jwt import JwtConfig, JwtValidationError, decode_and_validate
from handover_tracker.auth.models import Principal
from handover_tracker.settings import Settings, get_settings

_bearer = HTTPBearer(auto_error=False)


def get_principal(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(get_settings),
) -> Principal:
    if creds is None or not creds.credentials:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Access token required")

    try:
        payload = decode_and_validate(cfg=JwtConfig.from_settings(settings), token=creds.credentials)
    except JwtValidationError as e:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e

    subject = str(payload.get("sub", ""))
    roles_raw = payload.get("roles", [])
    if not subject:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token subject")
    if not isinstance(roles_raw, list):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Invalid token roles")

    roles: frozenset[str] = frozenset(str(r).lower() for r in roles_raw)
    return Principal(subject=subject, roles=roles)


def require_any_role(*allowed: str):
    allowed_set = frozenset(allowed)

    def _dep(principal: Principal = Depends(get_principal)) -> Principal:
        # Admin passes every role check.
        if principal.is_admin:
            return principal
        if not principal.roles & allowed_set:
            raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return principal

    return _dep


def require_cron_secret(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    settings: Settings = Depends(get_settings),
) -> str:
    # An unset secret rejects every caller rather than accepting an empty token.
    expected = settings.cron_secret
    supplied = creds.credentials if creds is not None else ""
    if not expected or not hmac.compare_digest(supplied, expected):
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return expected


# --- Module Notes -----------------------------------------------------------
# Manager dashboard reads are keyed by `manager_email` and stay unauthenticated;
# every mutation goes through `get_principal` / `require_any_role`.
