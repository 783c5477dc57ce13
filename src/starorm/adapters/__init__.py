"""
starorm Adapters

Web framework integrations for the auth layer.
"""

from .starlette import StarletteCookies, StarletteSession, auth_for_request

__all__ = ["StarletteCookies", "StarletteSession", "auth_for_request"]
