"""
FastAPI dependencies for authentication.

Provides ``db_session`` and ``get_optional_user_id``.  The OAuth routes
answer a missing session differently (login redirect, 401 JSON), so the
lookup returns ``None`` instead of raising.
"""

from __future__ import annotations

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import verify_token
from database.session import get_db_session


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


async def get_optional_user_id(request: Request) -> Optional[str]:
    """
    Return the authenticated ``user_id`` from the session cookie or a
    Bearer token, or ``None`` when there is no valid session.
    """
    settings = request.app.state.settings
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        authorization = request.headers.get("Authorization", "")
        if authorization.startswith("Bearer "):
            token = authorization[7:]
    if not token:
        return None
    return verify_token(token, settings.session_secret)
