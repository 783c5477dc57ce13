"""
Auth - Login, Logout and Remember-Me

The session holds the primary key of the logged in user. With remember
enabled, login also stores a UserToken and hands its value to the client in
the autologin cookie; a later request without a session user logs back in
through that token, rotating it on every use. Tokens are bound to a sha256
fingerprint of the client's user agent.

Drivers only differ in how passwords are hashed and verified (OrmAuth,
BcryptAuth).
"""

import hashlib
import hmac
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional, Union

from ..config import AuthSettings, get_settings
from .hashing import PasswordHasher
from .models import Role, User, UserToken
from .session import CookieJar, MemoryCookieJar, MemorySession, Session

logger = logging.getLogger(__name__)

FORCED_KEY = "auth_forced"

RoleRef = Union[None, str, Iterable[str], Role]


class Auth(ABC):
    """
    Base auth driver.

    Args:
        settings: Auth settings (default: the global settings)
        session: Session storing the logged in user
        cookies: Cookie jar holding the autologin token
        user_agent: Client user agent, fingerprinted into remember-me tokens
        hasher: Password hasher (default: built by the driver from settings)
    """

    def __init__(
        self,
        settings: Optional[AuthSettings] = None,
        session: Optional[Session] = None,
        cookies: Optional[CookieJar] = None,
        user_agent: str = "",
        hasher: Optional[PasswordHasher] = None,
    ):
        self.settings = settings or get_settings().auth
        self.session = session if session is not None else MemorySession()
        self.cookies = cookies if cookies is not None else MemoryCookieJar()
        self.user_agent = user_agent or ""
        self.hasher = hasher or self.make_hasher()

    @abstractmethod
    def make_hasher(self) -> PasswordHasher:
        """Hasher used when none is passed in."""
        pass

    @abstractmethod
    def _login(self, user: User, password: str, remember: bool) -> bool:
        """Verify the password and complete the login."""
        pass

    # Users

    def _load_user(self, user: Union[str, User]) -> User:
        if not isinstance(user, User):
            model = User()
            field = model.unique_key(user)
            user = model.where(f"{model.object_name}.{field}", "=", user).find()
        # Passwords written through this driver use its hasher
        return user.use_hasher(self.hasher)

    def _token(self, id: Any = None) -> UserToken:
        return UserToken(id, gc_probability=self.settings.token_gc_probability)

    def get_user(self, default: Any = None) -> Any:
        """
        The logged in user, logging in through the autologin cookie when the
        session holds nobody.

        Returns:
            Loaded User, or default
        """
        user_id = self.session.get(self.settings.session_key)
        if user_id is not None:
            user = User(user_id)
            if user.loaded:
                return user.use_hasher(self.hasher)

        user = self.auto_login()
        return default if user is None else user

    def login(self, username: Union[str, User], password: str, remember: bool = False) -> bool:
        """
        Log a user in.

        Args:
            username: Username, email address or User
            password: Plaintext password
            remember: Also issue an autologin token

        Returns:
            True on success
        """
        if not password:
            return False

        user = self._load_user(username)
        if self._login(user, password, remember):
            return True

        logger.info(f"Failed login for {username}")
        return False

    def _login_role(self) -> Role:
        return Role({"name": self.settings.login_role})

    def _remember(self, user: User) -> UserToken:
        lifetime = self.settings.lifetime
        token = self._token().values({
            "user_id": user.pk(),
            "expires": int(time.time()) + lifetime,
            "user_agent": self.fingerprint(),
        }).create()
        self.cookies.set(self.settings.autologin_cookie, token.token, lifetime)
        return token

    def complete_login(self, user: User) -> bool:
        """Count the login and store the user in a fresh session."""
        user.complete_login()
        self.session.regenerate()
        self.session.set(self.settings.session_key, user.pk())
        return True

    def force_login(self, user: Union[str, User], mark_session_as_forced: bool = False) -> None:
        """
        Log a user in without a password.

        Args:
            user: Username, email address or User
            mark_session_as_forced: Flag the session so account changes can be refused
        """
        user = self._load_user(user)
        if mark_session_as_forced:
            self.session.set(FORCED_KEY, True)
        self.complete_login(user)

    def auto_login(self) -> Optional[User]:
        """
        Log in through the autologin cookie.

        A token whose fingerprint does not match the current client is
        deleted. A matching token is rotated and sent back in the cookie.

        Returns:
            The user, or None
        """
        value = self.cookies.get(self.settings.autologin_cookie)
        if not value:
            return None

        token = self._token({"token": value})
        if token.loaded and token.user.loaded:
            if hmac.compare_digest(token.user_agent or "", self.fingerprint()):
                token.save()
                self.cookies.set(
                    self.settings.autologin_cookie,
                    token.token,
                    max(int(token.expires - time.time()), 0),
                )

                user = token.user.use_hasher(self.hasher)
                self.complete_login(user)
                return user

            logger.info(f"Autologin token for user {token.user_id} used by another client")
            token.delete()

        return None

    def logout(self, destroy: bool = False, logout_all: bool = False) -> bool:
        """
        Log the user out and drop the autologin token.

        Args:
            destroy: Destroy the whole session
            logout_all: Delete every token of the user, logging out other devices

        Returns:
            True when nobody is logged in afterwards
        """
        self.session.delete(FORCED_KEY)

        value = self.cookies.get(self.settings.autologin_cookie)
        if value:
            self.cookies.delete(self.settings.autologin_cookie)

            token = self._token({"token": value})
            if logout_all and token.loaded:
                self._token().where(f"{token.object_name}.user_id", "=", token.user_id).delete_all()
            elif token.loaded:
                token.delete()

        if destroy:
            self.session.destroy()
        else:
            self.session.delete(self.settings.session_key)
            self.session.regenerate()

        return not self.logged_in()

    def logged_in(self, role: RoleRef = None) -> bool:
        """
        Whether a user is logged in, optionally holding role.

        Args:
            role: Role name, list of role names (all required) or Role
        """
        user = self.get_user()
        if not isinstance(user, User) or not user.loaded:
            return False

        if not role:
            return True

        if isinstance(role, Role):
            roles = role
        elif isinstance(role, str):
            roles = Role({"name": role})
            if not roles.loaded:
                return False
        else:
            names = list(role)
            roles = Role().where("role.name", "IN", names).find_all()
            # Unknown role names fail the check
            if len(roles) != len(set(names)):
                return False

        return user.has("roles", roles)

    # Passwords

    def password(self, user: Union[str, User]) -> Optional[str]:
        """Stored password hash of a user."""
        return self._load_user(user).password

    def check_password(self, password: str) -> bool:
        """Compare password with the logged in user's stored hash."""
        user = self.get_user()
        if user is None:
            return False
        return self.hasher.verify(password, user.password)

    def hash(self, value: str) -> str:
        return self.hasher.hash(value)

    def fingerprint(self) -> str:
        """sha256 of the client user agent, stored with remember-me tokens."""
        return hashlib.sha256(self.user_agent.encode()).hexdigest()
