"""
Storefront web sessions (in-memory).

The storefront's sign-in flow calls create_web_session() and hands the
token to the browser; cart requests carry it as a bearer token.
"""
import secrets
from datetime import datetime, timezone, timedelta
from typing import Dict, Optional

SESSION_LIFETIME = timedelta(days=7)

# token -> {"user_id", "email", "name", "expires_at"}
_web_sessions: Dict[str, dict] = {}


def create_web_session(user_id: str, email: str, name: Optional[str] = None) -> str:
    """Start a session for a signed-in shopper; returns the bearer token."""
    token = secrets.token_urlsafe(32)
    _web_sessions[token] = {
        "user_id": str(user_id),
        "email": email,
        "name": name,
        "expires_at": datetime.now(timezone.utc) + SESSION_LIFETIME,
    }
    return token


def verify_web_session_token(token: str) -> Optional[dict]:
    """Session data for a live token, None for unknown or expired ones."""
    session = _web_sessions.get(token)
    if session is None:
        return None
    if session["expires_at"] <= datetime.now(timezone.utc):
        _web_sessions.pop(token, None)
        return None
    return session


def revoke_web_session(token: str) -> None:
    """Sign-out."""
    _web_sessions.pop(token, None)
