"""
starorm Auth

User, role and remember-me token models plus the login drivers built on
them. create_auth() picks the driver named in the auth settings.
"""

from typing import Optional

from ..config import AuthSettings, get_settings
from .base import Auth
from .bcrypt import BcryptAuth
from .hashing import BcryptHasher, HmacHasher, PasswordHasher, hasher_for
from .models import Role, User, UserToken
from .orm import OrmAuth
from .schema import create_auth_schema
from .session import CookieJar, MemoryCookieJar, MemorySession, Session

DRIVERS = {
    "orm": OrmAuth,
    "bcrypt": BcryptAuth,
}


def create_auth(
    settings: Optional[AuthSettings] = None,
    session: Optional[Session] = None,
    cookies: Optional[CookieJar] = None,
    user_agent: str = "",
) -> Auth:
    """Auth driver selected by settings.driver."""
    settings = settings or get_settings().auth
    return DRIVERS[settings.driver](settings, session=session, cookies=cookies, user_agent=user_agent)


__all__ = [
    "Auth",
    "OrmAuth",
    "BcryptAuth",
    "create_auth",
    "User",
    "Role",
    "UserToken",
    "PasswordHasher",
    "HmacHasher",
    "BcryptHasher",
    "hasher_for",
    "Session",
    "MemorySession",
    "CookieJar",
    "MemoryCookieJar",
    "create_auth_schema",
]
