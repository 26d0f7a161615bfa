"""FastAPI dependencies shared by the route modules."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

import jwt
from fastapi import Header, Request

from app.config import AppConfig
from app.logic.errors import AuthenticationError
from app.logic.shopify_client import ClientFactory


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_client_factory(request: Request) -> ClientFactory:
    return request.app.state.client_factory


# Seconds of clock skew tolerated on exp, nbf and iat
SESSION_TOKEN_LEEWAY = 10


def shop_from_session_token(token: str, *, api_key: str, api_secret: str) -> str:
    """Verify an App Bridge session token and return the shop domain it names.

    The token is an HS256 JWT signed with the app secret whose `dest` claim
    is the shop's admin URL and whose audience is the app's api key.
    """
    if not api_secret or not api_key:
        raise AuthenticationError("Admin authentication is not configured")
    try:
        claims = jwt.decode(
            token,
            api_secret,
            algorithms=["HS256"],
            audience=api_key,
            leeway=SESSION_TOKEN_LEEWAY,
            options={"verify_exp": True},
        )
    except jwt.PyJWTError as exc:
        raise AuthenticationError("Invalid session token") from exc
    shop = urlparse(str(claims.get("dest") or "")).netloc
    if not shop:
        raise AuthenticationError("Invalid session token")
    return shop


def current_shop(request: Request, authorization: Optional[str] = Header(default=None)) -> str:
    parts = (authorization or "").split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Session token required")
    cfg = get_config(request)
    return shop_from_session_token(parts[1], api_key=cfg.shopify.api_key, api_secret=cfg.shopify.api_secret)


__all__ = ["current_shop", "get_client_factory", "get_config", "shop_from_session_token"]
