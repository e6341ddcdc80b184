"""
handover_tracker.google_clients.auth

Service-account authentication for Google REST APIs.

Responsibilities:
- Parse and sanity-check the service-account JSON key.
- Sign RS256 JWT assertions and exchange them for OAuth access tokens.
- Cache the access token until shortly before it expires.
"""

from __future__ import annotations

import json
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx
import jwt

from handover_tracker.services.errors import SyncConfigurationError

DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_TTL_SECONDS = 3600
# Refresh a little early so a token never expires mid-request.
EXPIRY_MARGIN_SECONDS = 60


@dataclass(frozen=True, slots=True)
class ServiceAccount:
    client_email: str
    private_key: str = ""
    token_uri: str = DEFAULT_TOKEN_URI
    project_id: str | None = None

    @classmethod
    def from_json(cls, raw: str | None) -> ServiceAccount:
        if not raw:
            raise SyncConfigurationError("Google service account key is not configured")
        try:
            data: dict[str, Any] = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SyncConfigurationError("Google service account key is not valid JSON") from e
        if not is_valid_service_account(data):
            raise SyncConfigurationError(
                "Google service account key must be a service_account with client_email and private_key"
            )
        return cls(
            client_email=data["client_email"],
            private_key=data["private_key"],
            token_uri=data.get("token_uri") or DEFAULT_TOKEN_URI,
            project_id=data.get("project_id"),
        )


def is_valid_service_account(data: Any) -> bool:
    return bool(
        isinstance(data, dict)
        and data.get("type") == "service_account"
        and data.get("client_email")
        and data.get("private_key")
    )


def inspect_service_account(raw: str | None) -> tuple[bool, str | None]:
    """
    Return (valid, client_email) without raising; used by the diagnostics report.
    """

    if not raw:
        return False, None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return False, None
    email = data.get("client_email") if isinstance(data, dict) else None
    return is_valid_service_account(data), email


class GoogleTokenProvider:
    def __init__(
        self,
        *,
        account: ServiceAccount,
        scopes: Sequence[str],
        http: httpx.AsyncClient,
    ) -> None:
        self._account = account
        self._scopes = tuple(scopes)
        self._http = http
        self._token: str | None = None
        self._expires_at = 0.0

    def _assertion(self, now: int) -> str:
        claims = {
            "iss": self._account.client_email,
            "scope": " ".join(self._scopes),
            "aud": self._account.token_uri,
            "iat": now,
            "exp": now + ASSERTION_TTL_SECONDS,
        }
        try:
            return jwt.encode(claims, self._account.private_key, algorithm="RS256")
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            raise SyncConfigurationError("Google service account private key cannot sign tokens") from e

    async def access_token(self) -> str:
        now = time.time()
        if self._token is not None and now < self._expires_at:
            return self._token

        r = await self._http.post(
            self._account.token_uri,
            data={"grant_type": JWT_BEARER_GRANT, "assertion": self._assertion(int(now))},
        )
        r.raise_for_status()
        body = r.json()
        self._token = str(body["access_token"])
        self._expires_at = now + float(body.get("expires_in", ASSERTION_TTL_SECONDS)) - EXPIRY_MARGIN_SECONDS
        return self._token

    async def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self.access_token()}"}
