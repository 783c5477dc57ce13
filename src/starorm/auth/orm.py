"""
Auth - HMAC Driver

Passwords are stored as an HMAC of the plaintext keyed with hash_key.
"""

from .base import Auth
from .hashing import HmacHasher, PasswordHasher
from .models import User


class OrmAuth(Auth):
    """Auth driver with HMAC password hashing."""

    def make_hasher(self) -> PasswordHasher:
        return HmacHasher(self.settings.hash_key, self.settings.hash_method)

    def _login(self, user: User, password: str, remember: bool) -> bool:
        if not (user.loaded and self.hasher.verify(password, user.password)):
            return False
        if not user.has("roles", self._login_role()):
            return False

        if remember:
            self._remember(user)

        return self.complete_login(user)
