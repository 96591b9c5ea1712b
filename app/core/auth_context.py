from typing import Optional

from fastapi import Request

from app.core.config import settings


def get_session_token(request: Request) -> Optional[str]:
    # only the shared HttpOnly cookie counts, no header fallback
    return request.cookies.get(settings.COOKIE_NAME) or None


def get_request_host(request: Request) -> str:
    return request.headers.get("host") or request.url.hostname or ""
