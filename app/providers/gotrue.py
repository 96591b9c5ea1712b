"""
Identity provider for a hosted GoTrue (Supabase Auth) instance.

Role and tenant come from the user's app_metadata, which only the service
side can write. user_metadata is user-editable and is ignored.
"""
from datetime import datetime, timedelta, timezone

import requests

from app.core.errors import (
    ExpiredOrInvalidSessionError,
    InvalidCredentialsError,
    ProviderUnavailableError,
)
from app.core.logger import logger
from app.core.session import SessionCredential, Subject


class GoTrueIdentityProvider:

    def __init__(self, base_url: str, api_key: str, timeout: float = 5.0, session=None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.http = session or requests.Session()

    def _request(self, method: str, path: str, token: str = None, **kwargs):
        headers = {"apikey": self.api_key, "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = self.http.request(
                method,
                f"{self.base_url}/auth/v1{path}",
                headers=headers,
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            logger.warning(f"PROVIDER UNREACHABLE | path={path} | error={type(e).__name__}")
            raise ProviderUnavailableError("Identity provider unreachable") from e

        if response.status_code == 429:
            logger.warning(f"PROVIDER RATE LIMITED | path={path}")
            raise ProviderUnavailableError("Identity provider rate limited")
        if response.status_code >= 500:
            logger.warning(f"PROVIDER ERROR | path={path} | status={response.status_code}")
            raise ProviderUnavailableError(f"Identity provider returned {response.status_code}")
        return response

    def _json(self, response) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            logger.warning(f"PROVIDER BAD RESPONSE | status={response.status_code}")
            raise ProviderUnavailableError("Identity provider sent an unreadable response") from e
        if not isinstance(data, dict):
            raise ProviderUnavailableError("Identity provider sent an unexpected response")
        return data

    def verify_password(self, email: str, password: str) -> SessionCredential:
        response = self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": (email or "").strip(), "password": password},
        )
        if response.status_code != 200:
            raise InvalidCredentialsError()

        data = self._json(response)
        if not data.get("access_token"):
            raise InvalidCredentialsError()

        expires_in = max(60, int(data.get("expires_in") or 3600))
        return SessionCredential(
            token=data["access_token"],
            subject_id=(data.get("user") or {}).get("id", ""),
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
            issuer=self.base_url,
        )

    def verify_token(self, token: str) -> Subject:
        response = self._request("GET", "/user", token=token)
        if response.status_code != 200:
            raise ExpiredOrInvalidSessionError()

        user = self._json(response)
        if not user.get("id"):
            raise ExpiredOrInvalidSessionError()

        app_metadata = user.get("app_metadata") or {}
        return Subject(
            id=user["id"],
            email=user.get("email", ""),
            role=app_metadata.get("role"),
            tenant_id=app_metadata.get("tenant_id"),
        )

    def invalidate(self, token: str) -> None:
        # local scope ends this session only, not the user's other devices
        response = self._request("POST", "/logout", token=token, params={"scope": "local"})
        if response.status_code in (401, 403):
            raise ExpiredOrInvalidSessionError()
