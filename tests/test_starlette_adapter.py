"""
Test the Starlette adapter: request sessions, response cookies and a full
login / autologin / logout round trip through a TestClient.
"""

import pytest
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.routing import Route
from starlette.testclient import TestClient

from starorm.adapters import StarletteCookies, StarletteSession, auth_for_request
from starorm.auth import Role, User

PASSWORD = "correct horse"


def make_request(cookie: str = "", scheme: str = "http", session=None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "scheme": scheme,
        "server": ("testserver", 443 if scheme == "https" else 80),
        "path": "/",
        "query_string": b"",
        "headers": [(b"cookie", cookie.encode()), (b"user-agent", b"pytest")],
    }
    if session is not None:
        scope["session"] = session
    return Request(scope)


@pytest.fixture
def client(settings, database):
    user = User().create_user(
        {"username": "ada", "email": "ada@example.com", "password": PASSWORD, "password_confirm": PASSWORD},
        ["username", "email", "password"],
    )
    user.add("roles", Role({"name": "login"}))

    async def login(request):
        data = await request.json()
        auth = auth_for_request(request, settings=settings.auth)
        ok = auth.login(data["username"], data["password"], remember=data.get("remember", False))
        # Cookies written before the response existed are applied on bind
        return auth.cookies.bind(PlainTextResponse("yes" if ok else "no"))

    async def me(request):
        auth = auth_for_request(request, settings=settings.auth)
        user = auth.get_user()
        return auth.cookies.bind(PlainTextResponse(user.username if user else "anonymous"))

    async def logout(request):
        response = PlainTextResponse("bye")
        auth_for_request(request, response, settings.auth).logout()
        return response

    app = Starlette(
        routes=[
            Route("/login", login, methods=["POST"]),
            Route("/me", me),
            Route("/logout", logout, methods=["POST"]),
        ],
        middleware=[Middleware(SessionMiddleware, secret_key="test-secret")],
    )
    return TestClient(app)


def test_login_round_trip(client):
    assert client.get("/me").text == "anonymous"

    response = client.post("/login", json={"username": "ada", "password": "wrong"})
    assert response.text == "no"

    response = client.post("/login", json={"username": "ada", "password": PASSWORD, "remember": True})
    assert response.text == "yes"
    assert "authautologin" in response.cookies
    assert client.get("/me").text == "ada"

    # Session gone, the autologin cookie brings the user back with a new token
    old_token = client.cookies.get("authautologin")
    client.cookies.delete("session")
    response = client.get("/me")
    assert response.text == "ada"
    assert response.cookies.get("authautologin") not in (None, old_token)

    response = client.post("/logout")
    assert response.text == "bye"
    assert "authautologin" not in client.cookies
    assert client.get("/me").text == "anonymous"


def test_session_wraps_request_session():
    data = {"cart": [1]}
    session = StarletteSession(make_request(session=data))

    session.set("user", 5)
    assert data["user"] == 5
    assert session.get("cart") == [1]

    first = session.regenerate()
    assert session.regenerate() != first

    session.delete("user")
    assert session.get("user") is None
    assert session.destroy()
    assert data == {}


def test_cookies_pending_until_bound():
    cookies = StarletteCookies(make_request("theme=dark; stale=1"))
    assert cookies.get("theme") == "dark"

    cookies.set("token", "abc", 60)
    cookies.delete("stale")
    assert cookies.get("token") == "abc"
    assert cookies.get("stale") is None

    response = cookies.bind(Response())
    headers = response.headers.getlist("set-cookie")
    token_header = next(header for header in headers if header.startswith("token=abc"))
    assert "Max-Age=60" in token_header
    assert "HttpOnly" in token_header
    assert any(header.startswith("stale=") and "Max-Age=0" in header for header in headers)

    # Once bound, writes go straight to the response
    cookies.set("late", "1")
    assert any(header.startswith("late=1") for header in response.headers.getlist("set-cookie"))


def test_auth_for_request(settings):
    auth = auth_for_request(make_request(scheme="https", session={}), settings=settings.auth)
    assert auth.user_agent == "pytest"
    assert isinstance(auth.session, StarletteSession)
    assert auth.cookies._secure
