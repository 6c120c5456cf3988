"""Security-related helpers (built-in auth).

Optional HTTP Basic auth for the admin/event API, and a shared-token check for
Jira webhook deliveries.
"""

from __future__ import annotations

import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from ticket_sync.config import settings

_basic = HTTPBasic(auto_error=False, realm="TicketSync")

WEBHOOK_TOKEN_HEADER = "X-Webhook-Token"


def _matches(given: str | None, expected: str) -> bool:
    if given is None:
        return False
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def require_basic_auth(credentials: HTTPBasicCredentials | None = Depends(_basic)) -> None:
    """Reject the request unless auth is disabled or the credentials match."""
    if not settings.auth_enabled:
        return

    ok = (
        credentials is not None
        and _matches(credentials.username, settings.auth_username or "")
        and _matches(credentials.password, settings.auth_password or "")
    )
    if not ok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": 'Basic realm="TicketSync", charset="UTF-8"'},
        )


def verify_webhook_token(request: Request) -> None:
    """Jira cannot send Basic auth on webhooks; it carries a shared token instead."""
    expected = settings.webhook_token
    if not expected:
        return

    given = request.headers.get(WEBHOOK_TOKEN_HEADER) or request.query_params.get("token")
    if not _matches(given, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook token")
