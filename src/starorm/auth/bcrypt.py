"""
Auth - Bcrypt Driver

Passwords are stored as bcrypt hashes made with the configured cost. A
hash made with another cost is replaced on the next successful login.
"""

import logging

from .base import Auth
from .hashing import BcryptHasher, PasswordHasher
from .models import User

logger = logging.getLogger(__name__)


class BcryptAuth(Auth):
    """Auth driver with bcrypt password hashing."""

    def make_hasher(self) -> PasswordHasher:
        return BcryptHasher(self.settings.cost)

    def _login(self, user: User, password: str, remember: bool) -> bool:
        if not (user.loaded and self.hasher.verify(password, user.password)):
            return False
        if not user.has("roles", self._login_role()):
            return False

        if remember:
            self._remember(user)

        self.complete_login(user)

        if self.hasher.needs_rehash(user.password):
            logger.debug(f"Rehashing password of user {user.pk()}")
            user.password = password
            user.save()

        return True
