from __future__ import annotations

from flask import has_request_context, request, session

from .model import AuditContext


def flask_request_context() -> AuditContext:
    """Collect url/ip/user agent/session user; empty outside a request (CLI, tests)."""
    if not has_request_context():
        return AuditContext()

    user_id = session.get("user_id")
    return AuditContext(
        user_id=int(user_id) if user_id is not None else None,
        url=request.url,
        ip_address=request.headers.get("X-Forwarded-For", request.remote_addr or "").split(",")[0].strip() or None,
        user_agent=request.headers.get("User-Agent"),
    )
