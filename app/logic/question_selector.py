"""Choose which survey questions a customer should see next.

Active questions are kept in the merchant's order, questions the customer
already answered (any non-empty metafield under the question's sanitized
title) are dropped, and the remainder is capped by the shop's display
count. A failed metafield lookup is a 500, never read as "no answers",
so answered questions are not served twice.
"""

from __future__ import annotations

import logging

from app.logic.errors import InternalError, UpstreamUnavailableError, ValidationError
from app.logic.repository_store import get_store
from app.logic.sanitize import sanitize_title
from app.logic.shop_access import open_client
from app.logic.shopify_client import ClientFactory
from app.models.question import ChoiceQuestion, OpenQuestion

logger = logging.getLogger(__name__)


def select_questions(
    shop: str | None,
    customer_id: str | None,
    *,
    client_factory: ClientFactory,
    namespace: str = "custom",
) -> list[OpenQuestion | ChoiceQuestion]:
    if not customer_id or not shop:
        raise ValidationError("Customer ID and shop are required")

    store = get_store(shop)
    if store is None:
        return []
    active = [q for q in store.questions if q.is_active]
    if not active:
        return []

    with open_client(shop, client_factory) as client:
        try:
            stored = client.customer_metafields(customer_id, namespace=namespace)
        except UpstreamUnavailableError as exc:
            logger.error("selector.fetch_failed shop=%s customer=%s error=%s", shop, customer_id, exc.message)
            raise InternalError("Failed to fetch customer data") from exc
    answered = {key for key, value in stored.items() if value != ""}

    unanswered = [q for q in active if sanitize_title(q.title) not in answered]
    selected = unanswered[: store.count] if store.count > 0 else unanswered
    logger.info(
        "selector.selected",
        extra={
            "shop": shop,
            "active": len(active),
            "answered": len(answered),
            "returned": len(selected),
        },
    )
    return selected


__all__ = ["select_questions"]
