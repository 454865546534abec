"""
Common API dependencies: caller identity and the gateway instance.
"""

from typing import Optional

from fastapi import Header, Request

from heritage_ai.errors import UnauthorizedError
from heritage_ai.services.gateway import CurrentUser, Gateway

ROLES = {"user", "moderator", "admin"}


async def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> CurrentUser:
    """
    Identity forwarded by the platform's auth layer.

    Unknown roles are downgraded to ``user``.
    """
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError("Authentication required")

    role = (x_user_role or "user").strip().lower()
    if role not in ROLES:
        role = "user"
    return CurrentUser(user_id=x_user_id.strip(), role=role)


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway
