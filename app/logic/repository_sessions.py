"""Shop session (offline access token) data access."""

from __future__ import annotations

import logging

from sqlalchemy import text as sql_text

from app.db.base import get_engine

logger = logging.getLogger(__name__)


def get_access_token(shop: str) -> str | None:
    """Return the access token of the newest session stored for `shop`."""
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(
                "SELECT access_token FROM shop_sessions WHERE shop = :shop"
                " ORDER BY CASE WHEN expires IS NULL THEN 1 ELSE 0 END, expires DESC"
            ),
            {"shop": shop},
        ).fetchone()
    if not row or not row[0]:
        logger.info("sessions.token_missing shop=%s", shop)
        return None
    return str(row[0])


def save_session(session_id: str, shop: str, access_token: str, expires: str | None = None) -> None:
    """Insert or replace a session record, as written by the OAuth install flow."""
    with get_engine().begin() as conn:
        conn.execute(sql_text("DELETE FROM shop_sessions WHERE id = :id"), {"id": session_id})
        conn.execute(
            sql_text(
                "INSERT INTO shop_sessions (id, shop, access_token, expires)"
                " VALUES (:id, :shop, :token, :expires)"
            ),
            {"id": session_id, "shop": shop, "token": access_token, "expires": expires},
        )


__all__ = ["get_access_token", "save_session"]
