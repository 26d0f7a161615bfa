"""Customer metafield definition lifecycle.

`create_definition` and `delete_definition` raise on failure and are used
by the repair runner. The `*_best_effort` variants wrap them for the
request paths: failures are logged and queued for repair, never raised.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy.exc import SQLAlchemyError

from app.logic import repair_queue
from app.logic.errors import SurveyError, UpstreamError
from app.logic.shopify_client import AdminApiClient

logger = logging.getLogger(__name__)

# Definitions with a fixed label; everything else is a survey answer.
_LABELS: Dict[str, tuple[str, str]] = {
    "dob": ("Date of Birth", "Customer's date of birth"),
}


def definition_label(key: str) -> tuple[str, str]:
    if key in _LABELS:
        return _LABELS[key]
    return key[:1].upper() + key[1:], f"Survey question answer: {key}"


def _is_already_defined(error: Dict[str, Any]) -> bool:
    code = str(error.get("code") or "").upper()
    message = str(error.get("message") or "").lower()
    return code == "TAKEN" or "already" in message or "in use" in message


def create_definition(client: AdminApiClient, *, namespace: str, key: str) -> bool:
    """Create the definition for `key`; return False when it already existed."""
    name, description = definition_label(key)
    result = client.create_metafield_definition(
        namespace=namespace, key=key, name=name, description=description
    )
    errors: List[Dict[str, Any]] = result.get("userErrors") or []
    if not errors:
        logger.info("definitions.created shop=%s key=%s", client.shop, key)
        return True
    if all(_is_already_defined(e) for e in errors):
        return False
    raise UpstreamError("Failed to create metafield definition", details=errors)


def delete_definition(client: AdminApiClient, *, namespace: str, key: str) -> bool:
    """Delete the definition for `key` and every customer value stored under it.

    Returns False when no such definition exists.
    """
    for node in client.list_metafield_definitions(namespace=namespace):
        if node.get("key") == key and node.get("namespace") == namespace:
            result = client.delete_metafield_definition(str(node["id"]), delete_associated=True)
            errors = result.get("userErrors") or []
            if errors:
                raise UpstreamError("Failed to delete metafield definition", details=errors)
            logger.info("definitions.deleted shop=%s key=%s", client.shop, key)
            return True
    return False


def queue_repair(shop: str, action: str, key: str, error: str) -> None:
    """Record a failed side effect; a failure to record it is only logged."""
    try:
        repair_queue.enqueue(shop, action, key, error)
    except SQLAlchemyError as exc:
        logger.error("repair.enqueue_failed shop=%s action=%s key=%s error=%s", shop, action, key, exc)


def _clear_repair(shop: str, action: str, key: str) -> None:
    try:
        repair_queue.resolve(shop, action, key)
    except SQLAlchemyError as exc:
        logger.error("repair.resolve_failed shop=%s action=%s key=%s error=%s", shop, action, key, exc)


def ensure_definition_best_effort(client: AdminApiClient, *, namespace: str, key: str) -> None:
    try:
        create_definition(client, namespace=namespace, key=key)
    except SurveyError as exc:
        logger.warning("definitions.create_failed shop=%s key=%s error=%s", client.shop, key, exc.message)
        queue_repair(client.shop, repair_queue.CREATE_DEFINITION, key, _describe(exc))
        return
    _clear_repair(client.shop, repair_queue.CREATE_DEFINITION, key)


def remove_definition_best_effort(client: AdminApiClient, *, namespace: str, key: str) -> None:
    try:
        delete_definition(client, namespace=namespace, key=key)
    except SurveyError as exc:
        logger.warning("definitions.delete_failed shop=%s key=%s error=%s", client.shop, key, exc.message)
        queue_repair(client.shop, repair_queue.DELETE_DEFINITION, key, _describe(exc))
        return
    _clear_repair(client.shop, repair_queue.DELETE_DEFINITION, key)


def _describe(exc: SurveyError) -> str:
    if exc.details:
        return f"{exc.message}: {exc.details}"
    return exc.message


__all__ = [
    "create_definition",
    "definition_label",
    "delete_definition",
    "ensure_definition_best_effort",
    "queue_repair",
    "remove_definition_best_effort",
]
