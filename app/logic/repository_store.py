"""Shop survey configuration data access.

One `store_questions` row per shop holds the JSON-encoded question list, the
display count and a `version` counter. Writes are compare-and-set on that
version so two admin sessions editing the same shop cannot silently drop
each other's changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import text as sql_text
from sqlalchemy.exc import IntegrityError

from app.db.base import get_engine
from app.logic.errors import ConflictError
from app.models.question import ChoiceQuestion, OpenQuestion, dump_questions, load_questions

logger = logging.getLogger(__name__)


@dataclass
class StoreRecord:
    shop: str
    questions: list[OpenQuestion | ChoiceQuestion] = field(default_factory=list)
    count: int = 0
    version: int = 0


def _now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def get_store(shop: str) -> StoreRecord | None:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(
                "SELECT shop, questions, display_count, version FROM store_questions WHERE shop = :shop"
            ),
            {"shop": shop},
        ).mappings().fetchone()
    if not row:
        return None
    return StoreRecord(
        shop=str(row["shop"]),
        questions=load_questions(row["questions"]),
        count=int(row["display_count"] or 0),
        version=int(row["version"] or 0),
    )


def ensure_store(shop: str, *, default_count: int = 1) -> StoreRecord:
    """Return the shop's record, creating an empty one on first use."""
    existing = get_store(shop)
    if existing is not None:
        return existing
    now = _now_iso()
    try:
        with get_engine().begin() as conn:
            conn.execute(
                sql_text(
                    "INSERT INTO store_questions (shop, questions, display_count, version, created_at, updated_at)"
                    " VALUES (:shop, '[]', :count, 0, :now, :now)"
                ),
                {"shop": shop, "count": int(default_count), "now": now},
            )
        logger.info("store.created shop=%s count=%s", shop, default_count)
    except IntegrityError:
        # Another request created it first
        logger.info("store.create_race shop=%s", shop)
    record = get_store(shop)
    if record is None:  # pragma: no cover
        raise ConflictError("Store record could not be created")
    return record


def _compare_and_set(shop: str, expected_version: int, assignments: str, params: dict) -> None:
    with get_engine().begin() as conn:
        result = conn.execute(
            sql_text(
                f"UPDATE store_questions SET {assignments}, version = version + 1, updated_at = :now"
                " WHERE shop = :shop AND version = :expected"
            ),
            {**params, "shop": shop, "expected": int(expected_version), "now": _now_iso()},
        )
    if result.rowcount != 1:
        logger.warning("store.version_conflict shop=%s expected=%s", shop, expected_version)
        raise ConflictError("Questions were changed by another session. Reload and try again.")


def save_questions(
    shop: str, questions: list[OpenQuestion | ChoiceQuestion], *, expected_version: int
) -> None:
    _compare_and_set(shop, expected_version, "questions = :questions", {"questions": dump_questions(questions)})


def save_count(shop: str, count: int, *, expected_version: int) -> None:
    _compare_and_set(shop, expected_version, "display_count = :count", {"count": int(count)})


__all__ = ["StoreRecord", "ensure_store", "get_store", "save_count", "save_questions"]
