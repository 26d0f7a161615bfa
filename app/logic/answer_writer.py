"""Persist checkout survey answers as customer metafields.

Each answer is keyed by the sanitized question title. Blank answers are
dropped before anything is sent to Shopify. Definitions for the touched keys
are created first (best-effort), then all values go out through
`metafieldsSet`; any per-field user error fails the submission and the full
error list is returned to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List

from app.logic.errors import UpstreamError, ValidationError
from app.logic.metafield_definitions import ensure_definition_best_effort
from app.logic.sanitize import sanitize_title
from app.logic.shop_access import open_client
from app.logic.shopify_client import TEXT_FIELD_TYPE, AdminApiClient, ClientFactory, customer_gid

logger = logging.getLogger(__name__)

NO_VALID_ANSWERS = "No valid answers to save"
DOB_KEY = "dob"


@dataclass
class SubmitOutcome:
    saved_count: int
    message: str
    metafields: List[Dict[str, Any]] = field(default_factory=list)

    def to_body(self) -> Dict[str, Any]:
        return {
            "success": True,
            "message": self.message,
            "savedCount": self.saved_count,
            "metafields": self.metafields,
        }


def _answer_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if v is not None and str(v).strip())
    return str(value)


def collect_answer_fields(answers: Mapping[str, Any]) -> Dict[str, str]:
    """Map sanitized keys to answer text, skipping blank answers."""
    fields: Dict[str, str] = {}
    for title, value in answers.items():
        text = _answer_text(value)
        if not text.strip():
            continue
        key = sanitize_title(title)
        if not key:
            continue
        fields[key] = text
    return fields


def _write(
    client: AdminApiClient, customer_id: str, fields: Dict[str, str], *, namespace: str, failure_message: str
) -> List[Dict[str, Any]]:
    for key in fields:
        ensure_definition_best_effort(client, namespace=namespace, key=key)
    owner = customer_gid(customer_id)
    inputs = [
        {"ownerId": owner, "namespace": namespace, "key": key, "value": value, "type": TEXT_FIELD_TYPE}
        for key, value in fields.items()
    ]
    result = client.set_metafields(inputs)
    if result["userErrors"]:
        logger.warning(
            "answers.user_errors shop=%s customer=%s errors=%s", client.shop, owner, result["userErrors"]
        )
        raise UpstreamError(failure_message, details=result["userErrors"])
    return result["metafields"]


def submit_answers(
    shop: str | None,
    customer_id: str | None,
    answers: Any,
    *,
    client_factory: ClientFactory,
    namespace: str = "custom",
) -> SubmitOutcome:
    if not customer_id or not shop:
        raise ValidationError("Customer ID and shop are required")
    if not answers:
        raise ValidationError("Answers are required")
    if not isinstance(answers, Mapping):
        raise ValidationError("Answers must map question titles to answers")

    with open_client(shop, client_factory) as client:
        fields = collect_answer_fields(answers)
        if not fields:
            logger.info("answers.nothing_to_save shop=%s customer=%s", shop, customer_id)
            return SubmitOutcome(saved_count=0, message=NO_VALID_ANSWERS)
        written = _write(client, customer_id, fields, namespace=namespace, failure_message="Failed to save answers")

    logger.info("answers.saved", extra={"shop": shop, "customer": customer_id, "count": len(fields)})
    return SubmitOutcome(saved_count=len(fields), message="Answers saved successfully", metafields=written)


def save_date_of_birth(
    shop: str | None,
    customer_id: str | None,
    dob: str | None,
    *,
    client_factory: ClientFactory,
    namespace: str = "custom",
) -> Dict[str, Any]:
    if not customer_id or not shop:
        raise ValidationError("Customer ID and shop are required")

    with open_client(shop, client_factory) as client:
        if not dob or not str(dob).strip():
            raise ValidationError("No data to save")
        written = _write(
            client,
            customer_id,
            {DOB_KEY: str(dob).strip()},
            namespace=namespace,
            failure_message="Failed to save metafields",
        )

    return {
        "success": True,
        "message": "Customer metafields saved successfully",
        "metafields": written,
    }


__all__ = [
    "NO_VALID_ANSWERS",
    "SubmitOutcome",
    "collect_answer_fields",
    "save_date_of_birth",
    "submit_answers",
]
