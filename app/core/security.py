import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings
from app.core.errors import ExpiredOrInvalidSessionError

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto"
)


def _normalize_password(password: str) -> str:
    """
    bcrypt only looks at the first 72 bytes.
    Truncate on a UTF-8 safe boundary.
    """
    return password.encode("utf-8")[:72].decode("utf-8", errors="ignore")


def hash_password(password: str) -> str:
    return pwd_context.hash(_normalize_password(password))


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(_normalize_password(password), hashed)


def dummy_verify() -> None:
    # same cost as a real verify, used when the e-mail is unknown
    pwd_context.dummy_verify()


def create_access_token(subject_id: str, expires_delta: Optional[timedelta] = None) -> dict:
    """
    Signed token carrying identity only: sub, iat, exp, iss, jti.
    Role and permissions are never put in here.
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {
        "sub": str(subject_id),
        "iat": now,
        "exp": expire,
        "iss": settings.TOKEN_ISSUER,
        "jti": uuid.uuid4().hex,
    }
    token = jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return {"token": token, "jti": claims["jti"], "expires_at": expire}


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            issuer=settings.TOKEN_ISSUER,
        )
    except ExpiredSignatureError:
        raise ExpiredOrInvalidSessionError("Session expired")
    except JWTError:
        raise ExpiredOrInvalidSessionError()
