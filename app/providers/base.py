from typing import Protocol

from app.core.session import SessionCredential, Subject


class IdentityProvider(Protocol):
    """
    External identity collaborator. Implementations raise
    InvalidCredentialsError, ExpiredOrInvalidSessionError or
    ProviderUnavailableError from app.core.errors and nothing else.
    """

    def verify_password(self, email: str, password: str) -> SessionCredential:
        ...

    def verify_token(self, token: str) -> Subject:
        ...

    def invalidate(self, token: str) -> None:
        ...
