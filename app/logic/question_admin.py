"""Merchant-side question management.

Every operation is a read-modify-write of the shop's whole question list,
guarded by the record version (see `repository_store`). Deleting a question
also removes its customer metafield definition in Shopify; that cleanup is
best-effort and queued for repair when it fails, so the admin-side delete
always wins.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from app.logic.errors import AuthenticationError, NotFoundError, ValidationError
from app.logic import repair_queue
from app.logic.metafield_definitions import queue_repair, remove_definition_best_effort
from app.logic.repository_store import StoreRecord, ensure_store, save_count, save_questions
from app.logic.sanitize import sanitize_title
from app.logic.shop_access import open_client
from app.logic.shopify_client import ClientFactory
from app.models.question import ChoiceQuestion, OpenQuestion, parse_question
from app.models.question_kind import QuestionKind

logger = logging.getLogger(__name__)


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _new_question_id() -> str:
    return f"q_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _validated_fields(
    store: StoreRecord,
    *,
    title: Optional[str],
    question: Optional[str],
    data_type: Optional[str],
    options: Optional[str],
    exclude_id: Optional[str] = None,
    form_type: Optional[str] = None,
) -> Dict[str, Any]:
    extra = {"formType": form_type} if form_type else None
    if _blank(title) or _blank(question) or _blank(data_type):
        raise ValidationError("All fields are required", extra=extra)
    kind = str(data_type).strip()
    if kind not in QuestionKind.ALL:
        raise ValidationError(f"Unsupported data type: {kind}", extra=extra)
    if kind in QuestionKind.CHOICE and not [o for o in str(options or "").split("\n") if o.strip()]:
        raise ValidationError("Options are required for select questions", extra=extra)

    key = sanitize_title(title)
    if any(q.title == key and q.id != exclude_id for q in store.questions):
        raise ValidationError("A question with this title already exists", extra=extra)

    return {
        "title": key,
        "question": str(question),
        "dataType": kind,
        "options": options if kind in QuestionKind.CHOICE else None,
    }


def _build(record: Dict[str, Any], form_type: Optional[str]) -> OpenQuestion | ChoiceQuestion:
    try:
        return parse_question(record)
    except PydanticValidationError as exc:
        extra = {"formType": form_type} if form_type else None
        raise ValidationError("Invalid question", details=exc.errors(include_url=False), extra=extra) from exc


def _index_of(store: StoreRecord, question_id: Optional[str]) -> int:
    for i, q in enumerate(store.questions):
        if q.id == question_id:
            return i
    raise NotFoundError("Question not found")


def load_admin_view(shop: str, *, default_count: int = 1) -> Dict[str, Any]:
    store = ensure_store(shop, default_count=default_count)
    return {
        "questions": [q.to_record() for q in store.questions],
        "count": store.count or default_count or 1,
    }


def create_question(
    shop: str,
    *,
    title: Optional[str],
    question: Optional[str],
    data_type: Optional[str],
    options: Optional[str] = None,
    form_type: Optional[str] = None,
    default_count: int = 1,
) -> OpenQuestion | ChoiceQuestion:
    form_type = form_type or "add"
    store = ensure_store(shop, default_count=default_count)
    fields = _validated_fields(
        store, title=title, question=question, data_type=data_type, options=options, form_type=form_type
    )
    created = _build(
        {
            **fields,
            "id": _new_question_id(),
            "isActive": True,
            "createdAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        },
        form_type,
    )
    save_questions(shop, [*store.questions, created], expected_version=store.version)
    logger.info("questions.created shop=%s id=%s title=%s", shop, created.id, created.title)
    return created


def update_question(
    shop: str,
    question_id: Optional[str],
    *,
    title: Optional[str],
    question: Optional[str],
    data_type: Optional[str],
    options: Optional[str] = None,
    default_count: int = 1,
) -> OpenQuestion | ChoiceQuestion:
    if _blank(question_id):
        raise ValidationError("All fields are required")
    store = ensure_store(shop, default_count=default_count)
    idx = _index_of(store, question_id)
    fields = _validated_fields(
        store, title=title, question=question, data_type=data_type, options=options, exclude_id=question_id
    )
    updated = _build({**store.questions[idx].to_record(), **fields}, None)
    questions = list(store.questions)
    questions[idx] = updated
    save_questions(shop, questions, expected_version=store.version)
    logger.info("questions.updated shop=%s id=%s", shop, question_id)
    return updated


def toggle_question(shop: str, question_id: Optional[str], *, default_count: int = 1) -> OpenQuestion | ChoiceQuestion:
    store = ensure_store(shop, default_count=default_count)
    idx = _index_of(store, question_id)
    current = store.questions[idx]
    flipped = current.model_copy(update={"is_active": not current.is_active})
    questions = list(store.questions)
    questions[idx] = flipped
    save_questions(shop, questions, expected_version=store.version)
    logger.info("questions.toggled shop=%s id=%s active=%s", shop, question_id, flipped.is_active)
    return flipped


def delete_question(
    shop: str,
    question_id: Optional[str],
    *,
    client_factory: ClientFactory,
    namespace: str = "custom",
    default_count: int = 1,
) -> OpenQuestion | ChoiceQuestion:
    store = ensure_store(shop, default_count=default_count)
    idx = _index_of(store, question_id)
    removed = store.questions[idx]
    remaining = [q for q in store.questions if q.id != question_id]
    save_questions(shop, remaining, expected_version=store.version)
    logger.info("questions.deleted shop=%s id=%s", shop, question_id)

    key = sanitize_title(removed.title)
    try:
        client = open_client(shop, client_factory)
    except AuthenticationError as exc:
        logger.warning("questions.cleanup_skipped shop=%s key=%s reason=%s", shop, key, exc.message)
        queue_repair(shop, repair_queue.DELETE_DEFINITION, key, exc.message)
        return removed
    with client:
        remove_definition_best_effort(client, namespace=namespace, key=key)
    return removed


def update_count(shop: str, raw_count: Any, *, default_count: int = 1) -> int:
    try:
        count = int(str(raw_count).strip())
    except (TypeError, ValueError):
        raise ValidationError("Count must be at least 1") from None
    if count < 1:
        raise ValidationError("Count must be at least 1")
    store = ensure_store(shop, default_count=default_count)
    save_count(shop, count, expected_version=store.version)
    logger.info("questions.count_updated shop=%s count=%s", shop, count)
    return count


__all__ = [
    "create_question",
    "delete_question",
    "load_admin_view",
    "toggle_question",
    "update_count",
    "update_question",
]
