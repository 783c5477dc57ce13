"""
Starlette Adapter - Session and Cookie Integration

Plugs the auth layer into Starlette: the session is request.session
(SessionMiddleware must be installed) and cookies are read from the
request and written to the response.

    @app.route("/login", methods=["POST"])
    async def login(request):
        form = await request.form()
        response = RedirectResponse("/", status_code=303)
        auth = auth_for_request(request, response)
        auth.login(form["username"], form["password"], remember=True)
        return response
"""

import secrets
from typing import Any, Dict, Optional

from starlette.requests import Request
from starlette.responses import Response

from ..auth import Auth, create_auth
from ..auth.session import CookieJar, Session
from ..config import AuthSettings

SESSION_ID_KEY = "_session_id"


class StarletteSession(Session):
    """Session backed by request.session"""

    def __init__(self, request: Request):
        self._request = request

    @property
    def data(self) -> Dict[str, Any]:
        return self._request.session

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def delete(self, *keys: str) -> None:
        for key in keys:
            self.data.pop(key, None)

    def regenerate(self) -> str:
        # Signed cookie sessions have no server-side id; a fresh marker changes the cookie
        session_id = secrets.token_hex(16)
        self.data[SESSION_ID_KEY] = session_id
        return session_id

    def destroy(self) -> bool:
        self.data.clear()
        return True


class StarletteCookies(CookieJar):
    """
    Cookies read from the request and written to a response.

    Writes made before a response is bound are kept and applied by
    bind(response). Reads see writes made during the same request.
    """

    def __init__(self, request: Request, response: Optional[Response] = None, secure: bool = False):
        self._request = request
        self._response = response
        self._secure = secure
        # name -> (value, lifetime); None value means deleted
        self._pending: Dict[str, Any] = {}

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        if name in self._pending:
            value, _ = self._pending[name]
            return default if value is None else value
        return self._request.cookies.get(name, default)

    def set(self, name: str, value: str, lifetime: int = 0) -> None:
        self._pending[name] = (value, lifetime)
        if self._response is not None:
            self._write(self._response, name, value, lifetime)

    def delete(self, name: str) -> None:
        self._pending[name] = (None, 0)
        if self._response is not None:
            self._response.delete_cookie(name)

    def bind(self, response: Response) -> Response:
        """Attach a response and write every pending cookie change to it."""
        self._response = response
        for name, (value, lifetime) in self._pending.items():
            if value is None:
                response.delete_cookie(name)
            else:
                self._write(response, name, value, lifetime)
        return response

    def _write(self, response: Response, name: str, value: str, lifetime: int) -> None:
        response.set_cookie(
            name,
            value,
            max_age=lifetime or None,
            httponly=True,
            secure=self._secure,
            samesite="lax",
        )


def auth_for_request(
    request: Request,
    response: Optional[Response] = None,
    settings: Optional[AuthSettings] = None,
) -> Auth:
    """
    Auth driver bound to a Starlette request.

    Args:
        request: Incoming request (with SessionMiddleware installed)
        response: Response receiving cookie changes; can be bound later
            through auth.cookies.bind(response)
        settings: Auth settings (default: the global settings)
    """
    return create_auth(
        settings,
        session=StarletteSession(request),
        cookies=StarletteCookies(request, response, secure=request.url.scheme == "https"),
        user_agent=request.headers.get("user-agent", ""),
    )
