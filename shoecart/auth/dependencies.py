"""FastAPI dependency resolving the caller's identity from a bearer session token."""
from typing import Optional

from fastapi import Header, HTTPException
from pydantic import BaseModel

from shoecart.errors import ERROR_UNAUTHORIZED
from .session import verify_web_session_token


class SessionUser(BaseModel):
    """Signed-in storefront user."""
    id: str
    email: str
    name: Optional[str] = None


async def verify_session_auth(
    authorization: str = Header(None, alias="Authorization"),
) -> SessionUser:
    """
    Resolve `Authorization: Bearer <session_token>` into a user.

    The cart is always the caller's own; clients never pass a user id.
    """
    if not authorization:
        raise HTTPException(status_code=401, detail=ERROR_UNAUTHORIZED)

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail=ERROR_UNAUTHORIZED)

    session = verify_web_session_token(parts[1])
    if not session:
        raise HTTPException(status_code=401, detail=ERROR_UNAUTHORIZED)

    return SessionUser(id=session["user_id"], email=session["email"], name=session.get("name"))
