"""
Authentication dependencies.

Tokens are issued elsewhere; a request is authenticated by looking its bearer
token (or ``session_token`` cookie) up in ``user_sessions``.
"""

from datetime import datetime

from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..errors import AuthenticationError, ForbiddenError
from ..models import User
from ..utils import ensure_utc, utcnow


def create_auth_dependencies(db: AsyncIOMotorDatabase):
    """Build ``(get_current_user, require_admin)`` bound to a database."""

    async def get_current_user(request: Request) -> User:
        """Get current user from session token"""
        session_token = request.cookies.get("session_token")

        if not session_token:
            auth_header = request.headers.get("Authorization")
            if auth_header and auth_header.startswith("Bearer "):
                session_token = auth_header.split(" ", 1)[1].strip()

        if not session_token:
            raise AuthenticationError("Not authenticated")

        session = await db.user_sessions.find_one(
            {"session_token": session_token},
            {"_id": 0}
        )
        if not session:
            raise AuthenticationError("Invalid session")

        expires_at = session.get("expires_at")
        if isinstance(expires_at, str):
            expires_at = datetime.fromisoformat(expires_at)
        if expires_at is not None and ensure_utc(expires_at) < utcnow():
            raise AuthenticationError("Session expired")

        user = await db.users.find_one(
            {"user_id": session["user_id"]},
            {"_id": 0}
        )
        if not user:
            raise AuthenticationError("User not found")

        return User(**user)

    async def require_admin(user: User = Depends(get_current_user)) -> User:
        if not user.is_admin:
            raise ForbiddenError("Admin access required")
        return user

    return get_current_user, require_admin
