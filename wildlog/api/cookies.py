from __future__ import annotations

from typing import Optional

from fastapi import Response

SESSION_COOKIE_NAME = "session"


def parse_session_token(cookie_header: Optional[str]) -> Optional[str]:
    """Extract the session token from a raw ``Cookie`` header.

    The header is split on ``;`` and the first trimmed segment starting with
    ``session=`` wins. Missing header, missing cookie or an empty value all
    yield ``None``.
    """
    if not cookie_header:
        return None
    prefix = f"{SESSION_COOKIE_NAME}="
    for segment in cookie_header.split(";"):
        segment = segment.strip()
        if segment.startswith(prefix):
            return segment[len(prefix):] or None
    return None


def session_cookie_header(token: str, max_age: int, *, secure: bool = True) -> str:
    parts = [
        f"{SESSION_COOKIE_NAME}={token}",
        "Path=/",
        f"Max-Age={max_age}",
        "HttpOnly",
    ]
    if secure:
        parts.append("Secure")
    parts.append("SameSite=Strict")
    return "; ".join(parts)


def set_session_cookie(
    response: Response, token: str, *, max_age: int, secure: bool = True
) -> None:
    response.headers.append("set-cookie", session_cookie_header(token, max_age, secure=secure))


def clear_session_cookie(response: Response, *, secure: bool = True) -> None:
    response.headers.append("set-cookie", session_cookie_header("", 0, secure=secure))
