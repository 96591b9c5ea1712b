"""
Identity provider backed by the identity database.

Users live in identity_users, tokens are signed JWTs (see
app.core.security) and revocation is a jti deny-list in revoked_tokens.
"""
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.errors import (
    ExpiredOrInvalidSessionError,
    InvalidCredentialsError,
    ProviderUnavailableError,
)
from app.core.logger import logger
from app.core.security import (
    create_access_token,
    decode_access_token,
    dummy_verify,
    hash_password,
    verify_password,
)
from app.core.session import SessionCredential, Subject
from app.models.identity import IdentityUser, RevokedToken


class LocalIdentityProvider:

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def _session(self):
        try:
            return self._session_factory()
        except SQLAlchemyError as e:
            raise ProviderUnavailableError("Identity database unavailable") from e

    def verify_password(self, email: str, password: str) -> SessionCredential:
        email = (email or "").strip().lower()
        db = self._session()
        try:
            user = db.query(IdentityUser).filter(IdentityUser.email == email).first()

            if not user or not user.is_active:
                dummy_verify()
                raise InvalidCredentialsError()
            if not verify_password(password, user.password_hash):
                raise InvalidCredentialsError()

            issued = create_access_token(user.id)
            user.last_login = datetime.now(timezone.utc)
            db.commit()

            return SessionCredential(
                token=issued["token"],
                subject_id=user.id,
                expires_at=issued["expires_at"],
                issuer=settings.TOKEN_ISSUER,
            )
        except SQLAlchemyError as e:
            db.rollback()
            raise ProviderUnavailableError("Identity database unavailable") from e
        finally:
            db.close()

    def verify_token(self, token: str) -> Subject:
        claims = decode_access_token(token)

        db = self._session()
        try:
            if db.get(RevokedToken, claims["jti"]) is not None:
                raise ExpiredOrInvalidSessionError("Session revoked")

            user = db.get(IdentityUser, claims["sub"])
            if not user or not user.is_active:
                raise ExpiredOrInvalidSessionError()

            return Subject(
                id=user.id,
                email=user.email,
                role=user.role,
                tenant_id=user.tenant_id,
            )
        except SQLAlchemyError as e:
            raise ProviderUnavailableError("Identity database unavailable") from e
        finally:
            db.close()

    def invalidate(self, token: str) -> None:
        claims = decode_access_token(token)

        db = self._session()
        try:
            if db.get(RevokedToken, claims["jti"]) is None:
                db.add(RevokedToken(
                    jti=claims["jti"],
                    subject_id=claims["sub"],
                    expires_at=datetime.fromtimestamp(claims["exp"], timezone.utc),
                ))
                db.commit()
            logger.info(f"TOKEN REVOKED | user_id={claims['sub']}")
        except SQLAlchemyError as e:
            db.rollback()
            raise ProviderUnavailableError("Identity database unavailable") from e
        finally:
            db.close()

    def purge_expired_revocations(self) -> int:
        """Drop deny-list rows whose tokens would be rejected as expired anyway."""
        db = self._session()
        try:
            deleted = (
                db.query(RevokedToken)
                .filter(RevokedToken.expires_at < datetime.now(timezone.utc))
                .delete(synchronize_session=False)
            )
            db.commit()
            return deleted
        except SQLAlchemyError as e:
            db.rollback()
            raise ProviderUnavailableError("Identity database unavailable") from e
        finally:
            db.close()

    def create_user(self, email: str, password: str, role: str = None, tenant_id: str = None) -> IdentityUser:
        """Provisioning helper for seeding and tests."""
        db = self._session()
        try:
            user = IdentityUser(
                email=email.strip().lower(),
                password_hash=hash_password(password),
                role=role,
                tenant_id=tenant_id,
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            db.expunge(user)
            return user
        finally:
            db.close()
