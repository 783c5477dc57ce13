"""
Auth Hashing - Password Hashers

HmacHasher keys a plain HMAC with a secret (hash_method/hash_key);
BcryptHasher uses bcrypt through passlib. hasher_for() builds the
hasher a driver setting calls for.
"""

import hashlib
import hmac
import logging
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Optional

from passlib.context import CryptContext

from ..config import AuthSettings
from ..exceptions import AuthError

logger = logging.getLogger(__name__)

MIN_BCRYPT_COST = 10


class PasswordHasher(ABC):
    """Abstract password hasher"""

    @abstractmethod
    def hash(self, password: str) -> str:
        """Hash a plaintext password"""
        pass

    @abstractmethod
    def verify(self, password: str, hashed: Optional[str]) -> bool:
        """Check a plaintext password against a stored hash"""
        pass

    def needs_rehash(self, hashed: str) -> bool:
        """Whether a stored hash was made with outdated parameters"""
        return False


class HmacHasher(PasswordHasher):
    """
    HMAC password hashing.

    Args:
        key: Secret key (required)
        method: hashlib algorithm name
    """

    def __init__(self, key: Optional[str], method: str = "sha256"):
        if not key:
            raise AuthError("A valid hash key must be set in your auth config.")
        if method not in hashlib.algorithms_available:
            raise AuthError(f"Unsupported hash method {method}")
        self._key = key.encode()
        self.method = method

    def hash(self, password: str) -> str:
        return hmac.new(self._key, password.encode(), self.method).hexdigest()

    def verify(self, password: str, hashed: Optional[str]) -> bool:
        if not hashed:
            return False
        return hmac.compare_digest(self.hash(password), hashed)


class BcryptHasher(PasswordHasher):
    """
    Bcrypt password hashing.

    Args:
        cost: bcrypt work factor, at least 10
    """

    def __init__(self, cost: int = MIN_BCRYPT_COST):
        if not isinstance(cost, int) or cost < MIN_BCRYPT_COST:
            raise AuthError(f"BcryptHasher cost parameter must be set and must be integer >= {MIN_BCRYPT_COST}")
        self.cost = cost
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__default_rounds=cost,
            # Hashes made with any other cost need a rehash
            bcrypt__min_rounds=cost,
            bcrypt__max_rounds=cost,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed: Optional[str]) -> bool:
        if not hashed:
            return False
        try:
            return self._context.verify(password, hashed)
        except ValueError:
            # Not a bcrypt hash
            return False

    def needs_rehash(self, hashed: str) -> bool:
        return self._context.needs_update(hashed)


@lru_cache(maxsize=None)
def _hasher(driver: str, hash_key: Optional[str], hash_method: str, cost: int) -> PasswordHasher:
    hasher = BcryptHasher(cost) if driver == "bcrypt" else HmacHasher(hash_key, hash_method)
    logger.debug(f"Using {type(hasher).__name__} for {driver} passwords")
    return hasher


def hasher_for(settings: AuthSettings) -> PasswordHasher:
    """Hasher matching the driver named in settings, shared by equal settings."""
    return _hasher(settings.driver, settings.hash_key, settings.hash_method, settings.cost)
