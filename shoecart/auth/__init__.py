"""Authentication package."""
from .session import create_web_session, verify_web_session_token, revoke_web_session
from .dependencies import SessionUser, verify_session_auth

__all__ = [
    "create_web_session",
    "verify_web_session_token",
    "revoke_web_session",
    "SessionUser",
    "verify_session_auth",
]
