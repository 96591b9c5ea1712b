"""
Session authority: login, session validation and logout on top of an
identity provider.

The session cookie is scoped to the tenant's root domain so that
slug-itsm., slug-control. and slug-self. hosts share one login. A cookie
instruction is only ever produced after the provider has confirmed the
credentials. Role and permissions are never read from the token or the
request; the user returned by validate() is exactly what the provider
asserts.

No retries happen here. ProviderUnavailableError is passed through so the
caller can decide.
"""
import math
from datetime import datetime, timezone
from typing import Optional, Tuple

from app.core.config import settings
from app.core.errors import (
    ExpiredOrInvalidSessionError,
    InvalidCredentialsError,
    ProviderUnavailableError,
)
from app.core.hosts import cookie_domain_for_host
from app.core.logger import logger
from app.core.session import SessionCookie, SessionCredential, User
from app.providers.base import IdentityProvider


class SessionAuthority:

    def __init__(self, provider: IdentityProvider, config=settings):
        self.provider = provider
        self.config = config

    def cookie_domain(self, host: str) -> Optional[str]:
        return cookie_domain_for_host(host, self.config.ROOT_DOMAIN)

    def _cookie(self, host: str, value: str, max_age: Optional[int]) -> SessionCookie:
        return SessionCookie(
            name=self.config.COOKIE_NAME,
            value=value,
            domain=self.cookie_domain(host),
            max_age=max_age,
            secure=self.config.COOKIE_SECURE,
            samesite=self.config.COOKIE_SAMESITE,
        )

    def authenticate(self, email: str, password: str, host: str) -> Tuple[SessionCredential, SessionCookie]:
        if not email or not password:
            raise InvalidCredentialsError()

        try:
            credential = self.provider.verify_password(email, password)
        except InvalidCredentialsError:
            logger.warning(f"LOGIN FAILED | email={email} | host={host}")
            raise
        except ProviderUnavailableError:
            logger.error(f"LOGIN PROVIDER UNAVAILABLE | host={host}")
            raise

        remaining = (credential.expires_at - datetime.now(timezone.utc)).total_seconds()
        cookie = self._cookie(host, credential.token, max(0, math.floor(remaining)))

        logger.info(
            f"LOGIN SUCCESS | user_id={credential.subject_id} | cookie_domain={cookie.domain}"
        )
        return credential, cookie

    def validate(self, token: Optional[str]) -> User:
        if not token:
            raise ExpiredOrInvalidSessionError("Not authenticated")

        try:
            subject = self.provider.verify_token(token)
        except ExpiredOrInvalidSessionError as e:
            logger.info(f"SESSION REJECTED | reason={e}")
            raise
        return User.from_subject(subject)

    def revoke(self, token: str) -> None:
        if not token:
            raise ExpiredOrInvalidSessionError("Not authenticated")
        self.provider.invalidate(token)

    def logout_cookie(self, host: str) -> SessionCookie:
        return self._cookie(host, "", 0)
