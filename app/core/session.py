from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Subject:
    """What the identity provider asserts about a token's owner."""
    id: str
    email: str
    role: Optional[str]
    tenant_id: Optional[str]


@dataclass(frozen=True)
class SessionCredential:
    token: str
    subject_id: str
    expires_at: datetime
    issuer: str


@dataclass(frozen=True)
class User:
    id: str
    email: str
    role: Optional[str]
    tenant_id: Optional[str]

    @classmethod
    def from_subject(cls, subject: Subject) -> "User":
        return cls(
            id=subject.id,
            email=subject.email,
            role=subject.role,
            tenant_id=subject.tenant_id,
        )


@dataclass(frozen=True)
class SessionCookie:
    """Instruction for the HTTP layer to set (or clear) the shared cookie."""
    name: str
    value: str
    domain: Optional[str]
    max_age: Optional[int] = None
    path: str = "/"
    httponly: bool = True
    secure: bool = True
    samesite: str = "Lax"

    def apply(self, response) -> None:
        response.set_cookie(
            key=self.name,
            value=self.value,
            max_age=self.max_age,
            path=self.path,
            domain=self.domain,
            secure=self.secure,
            httponly=self.httponly,
            samesite=self.samesite,
        )

    def expire(self, response) -> None:
        """Clear the cookie with the same scope it was set with."""
        response.delete_cookie(
            key=self.name,
            path=self.path,
            domain=self.domain,
            secure=self.secure,
            httponly=self.httponly,
            samesite=self.samesite,
        )
