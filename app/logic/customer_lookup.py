"""Order → customer resolution for thank-you pages without a buyer identity."""

from __future__ import annotations

import logging
from typing import Any, Dict

from app.logic.errors import NotFoundError, ValidationError
from app.logic.shop_access import open_client
from app.logic.shopify_client import ClientFactory

logger = logging.getLogger(__name__)


def customer_from_order(shop: str | None, order_id: str | None, *, client_factory: ClientFactory) -> Dict[str, Any]:
    if not order_id or not shop:
        raise ValidationError("Order ID and shop are required")

    with open_client(shop, client_factory) as client:
        order = client.order_customer(order_id)

    if not order:
        raise NotFoundError("Order not found")
    customer = order.get("customer")
    if not customer:
        raise NotFoundError("No customer associated with this order")

    logger.info("orders.customer_resolved shop=%s order=%s", shop, order.get("id"))
    return {
        "success": True,
        "customerId": customer.get("id"),
        "customer": {
            "id": customer.get("id"),
            "email": customer.get("email"),
            "firstName": customer.get("firstName"),
            "lastName": customer.get("lastName"),
            "displayName": customer.get("displayName"),
        },
        "order": {"id": order.get("id"), "name": order.get("name")},
    }


__all__ = ["customer_from_order"]
