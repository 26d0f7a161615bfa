"""Resolve a shop's stored credential into an Admin API client."""

from __future__ import annotations

from app.logic.errors import AuthenticationError
from app.logic.repository_sessions import get_access_token
from app.logic.shopify_client import AdminApiClient, ClientFactory

REINSTALL_MESSAGE = "Authentication required. Please reinstall the app."


def open_client(shop: str, client_factory: ClientFactory) -> AdminApiClient:
    token = get_access_token(shop)
    if not token:
        raise AuthenticationError(REINSTALL_MESSAGE)
    return client_factory(shop, token)


__all__ = ["REINSTALL_MESSAGE", "open_client"]
