"""
Auth Session - Session and Cookie Interfaces

The auth drivers only need to get, set and delete single named values in
the user's session and in cookies. Web frameworks plug in through these
interfaces (see starorm.adapters.starlette); the in-memory implementations
serve tests and non-web use.
"""

import secrets
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple


class Session(ABC):
    """Abstract session interface"""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Get session value"""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Set session value"""
        pass

    @abstractmethod
    def delete(self, *keys: str) -> None:
        """Remove session values"""
        pass

    @abstractmethod
    def regenerate(self) -> str:
        """Issue a new session id, keeping the data; returns the new id"""
        pass

    @abstractmethod
    def destroy(self) -> bool:
        """Drop all session data"""
        pass


class MemorySession(Session):
    """In-memory session implementation"""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = dict(data or {})
        self.session_id = secrets.token_hex(16)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def delete(self, *keys: str) -> None:
        for key in keys:
            self.data.pop(key, None)

    def regenerate(self) -> str:
        self.session_id = secrets.token_hex(16)
        return self.session_id

    def destroy(self) -> bool:
        self.data.clear()
        self.session_id = secrets.token_hex(16)
        return True


class CookieJar(ABC):
    """Abstract cookie interface"""

    @abstractmethod
    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get cookie value"""
        pass

    @abstractmethod
    def set(self, name: str, value: str, lifetime: int = 0) -> None:
        """Set cookie value; lifetime in seconds, 0 for a browser-session cookie"""
        pass

    @abstractmethod
    def delete(self, name: str) -> None:
        """Delete cookie"""
        pass


class MemoryCookieJar(CookieJar):
    """In-memory cookie implementation honouring lifetimes"""

    def __init__(self):
        self.cookies: Dict[str, Tuple[str, Optional[float]]] = {}

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        entry = self.cookies.get(name)
        if entry is None:
            return default
        value, expires = entry
        if expires is not None and expires <= time.time():
            del self.cookies[name]
            return default
        return value

    def set(self, name: str, value: str, lifetime: int = 0) -> None:
        expires = time.time() + lifetime if lifetime else None
        self.cookies[name] = (value, expires)

    def delete(self, name: str) -> None:
        self.cookies.pop(name, None)
