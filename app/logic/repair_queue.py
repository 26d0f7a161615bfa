"""Retryable record of failed metafield definition side effects.

Creating a definition before an answer write and deleting one after a
question is removed are best-effort steps: the primary operation must not
fail because of them. Instead of only logging the failure, it is recorded
here as a task that `app.logic.repairs.run_repairs` retries on demand.

At most one task exists per (shop, action, key). Queuing a delete cancels
a pending create for the same key and vice versa.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import text as sql_text

from app.db.base import get_engine

logger = logging.getLogger(__name__)

CREATE_DEFINITION = "create_definition"
DELETE_DEFINITION = "delete_definition"
_OPPOSITE = {CREATE_DEFINITION: DELETE_DEFINITION, DELETE_DEFINITION: CREATE_DEFINITION}


@dataclass
class RepairTask:
    id: str
    shop: str
    action: str
    metafield_key: str
    last_error: str | None
    attempts: int
    created_at: str
    updated_at: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "key": self.metafield_key,
            "lastError": self.last_error,
            "attempts": self.attempts,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


def _now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def enqueue(shop: str, action: str, key: str, error: str) -> None:
    if action not in _OPPOSITE:
        raise ValueError(f"unknown repair action: {action}")
    now = _now_iso()
    with get_engine().begin() as conn:
        conn.execute(
            sql_text(
                "DELETE FROM metafield_repairs WHERE shop = :shop AND action = :action AND metafield_key = :key"
            ),
            {"shop": shop, "action": _OPPOSITE[action], "key": key},
        )
        conn.execute(
            sql_text(
                "INSERT INTO metafield_repairs"
                " (id, shop, action, metafield_key, last_error, attempts, created_at, updated_at)"
                " VALUES (:id, :shop, :action, :key, :err, 0, :now, :now)"
                " ON CONFLICT (shop, action, metafield_key)"
                " DO UPDATE SET last_error = excluded.last_error, updated_at = excluded.updated_at"
            ),
            {"id": str(uuid.uuid4()), "shop": shop, "action": action, "key": key, "err": error, "now": now},
        )
    logger.warning("repair.enqueued shop=%s action=%s key=%s error=%s", shop, action, key, error)


def resolve(shop: str, action: str, key: str) -> None:
    with get_engine().begin() as conn:
        conn.execute(
            sql_text(
                "DELETE FROM metafield_repairs WHERE shop = :shop AND action = :action AND metafield_key = :key"
            ),
            {"shop": shop, "action": action, "key": key},
        )


def record_failure(task_id: str, error: str) -> None:
    with get_engine().begin() as conn:
        conn.execute(
            sql_text(
                "UPDATE metafield_repairs SET attempts = attempts + 1, last_error = :err, updated_at = :now"
                " WHERE id = :id"
            ),
            {"id": task_id, "err": error, "now": _now_iso()},
        )


def list_pending(shop: str) -> list[RepairTask]:
    with get_engine().connect() as conn:
        rows = conn.execute(
            sql_text(
                "SELECT id, shop, action, metafield_key, last_error, attempts, created_at, updated_at"
                " FROM metafield_repairs WHERE shop = :shop ORDER BY created_at ASC, id ASC"
            ),
            {"shop": shop},
        ).mappings().all()
    return [
        RepairTask(
            id=str(r["id"]),
            shop=str(r["shop"]),
            action=str(r["action"]),
            metafield_key=str(r["metafield_key"]),
            last_error=r["last_error"],
            attempts=int(r["attempts"] or 0),
            created_at=str(r["created_at"]),
            updated_at=str(r["updated_at"]),
        )
        for r in rows
    ]


__all__ = [
    "CREATE_DEFINITION",
    "DELETE_DEFINITION",
    "RepairTask",
    "enqueue",
    "list_pending",
    "record_failure",
    "resolve",
]