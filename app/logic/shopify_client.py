"""Shopify GraphQL Admin API client.

Wraps the handful of Admin API operations the survey needs: metafield
definition create/list/delete, metafield writes, customer metafield reads and
the order → customer lookup. Transport problems and non-2xx answers raise
`UpstreamUnavailableError`; top-level GraphQL `errors` raise `UpstreamError`
with the error list attached. Field-level `userErrors` are returned to the
caller, which decides whether they are fatal.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from app.config import ShopifyConfig
from app.logic.errors import UpstreamError, UpstreamUnavailableError

logger = logging.getLogger(__name__)

CUSTOMER_GID_PREFIX = "gid://shopify/Customer/"
ORDER_GID_PREFIX = "gid://shopify/Order/"
OWNER_CUSTOMER = "CUSTOMER"
TEXT_FIELD_TYPE = "single_line_text_field"
METAFIELDS_SET_LIMIT = 25


DEFINITION_CREATE = """
mutation metafieldDefinitionCreate($definition: MetafieldDefinitionInput!) {
  metafieldDefinitionCreate(definition: $definition) {
    createdDefinition { id name namespace key }
    userErrors { field message code }
  }
}
"""

DEFINITIONS_LIST = """
query getMetafieldDefinitions($ownerType: MetafieldOwnerType!, $namespace: String, $after: String) {
  metafieldDefinitions(first: 250, ownerType: $ownerType, namespace: $namespace, after: $after) {
    edges { node { id key namespace } }
    pageInfo { hasNextPage endCursor }
  }
}
"""

DEFINITION_DELETE = """
mutation metafieldDefinitionDelete($id: ID!, $deleteAllAssociatedMetafields: Boolean!) {
  metafieldDefinitionDelete(id: $id, deleteAllAssociatedMetafields: $deleteAllAssociatedMetafields) {
    deletedDefinitionId
    userErrors { field message code }
  }
}
"""

METAFIELDS_SET = """
mutation metafieldsSet($metafields: [MetafieldsSetInput!]!) {
  metafieldsSet(metafields: $metafields) {
    metafields { id namespace key value }
    userErrors { field message code }
  }
}
"""

CUSTOMER_METAFIELDS = """
query getCustomerMetafields($id: ID!, $namespace: String, $after: String) {
  customer(id: $id) {
    id
    metafields(first: 250, namespace: $namespace, after: $after) {
      edges { node { key value namespace } }
      pageInfo { hasNextPage endCursor }
    }
  }
}
"""

ORDER_CUSTOMER = """
query getCustomerFromOrder($orderId: ID!) {
  order(id: $orderId) {
    id
    name
    customer { id email firstName lastName displayName }
  }
}
"""


def _to_gid(prefix: str, value: object) -> str:
    raw = str(value).strip()
    if raw.startswith("gid://"):
        return raw
    return f"{prefix}{raw}"


def customer_gid(customer_id: object) -> str:
    return _to_gid(CUSTOMER_GID_PREFIX, customer_id)


def order_gid(order_id: object) -> str:
    return _to_gid(ORDER_GID_PREFIX, order_id)


class AdminApiClient:
    """Per-shop GraphQL client authenticated with the shop's access token."""

    def __init__(
        self,
        shop: str,
        access_token: str,
        *,
        api_version: str = "2024-01",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.shop = shop
        self.endpoint = f"/admin/api/{api_version}/graphql.json"
        self._http = httpx.Client(
            base_url=f"https://{shop}",
            headers={
                "Content-Type": "application/json",
                "X-Shopify-Access-Token": access_token,
            },
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "AdminApiClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def execute(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self._http.post(self.endpoint, json={"query": query, "variables": variables or {}})
        except httpx.HTTPError as exc:
            logger.error("shopify.transport_failed shop=%s error=%s", self.shop, exc)
            raise UpstreamUnavailableError("Failed to reach Shopify Admin API") from exc

        if response.status_code >= 400:
            logger.error(
                "shopify.http_error shop=%s status=%s body=%s",
                self.shop,
                response.status_code,
                response.text[:500],
            )
            raise UpstreamUnavailableError(
                f"Shopify API error: {response.status_code}", status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error("shopify.invalid_json shop=%s", self.shop)
            raise UpstreamUnavailableError("Shopify API returned invalid JSON") from exc

        if payload.get("errors"):
            logger.warning("shopify.graphql_errors shop=%s errors=%s", self.shop, payload["errors"])
            raise UpstreamError("GraphQL errors", details=payload["errors"])
        return payload.get("data") or {}

    # -- metafield definitions -------------------------------------------

    def create_metafield_definition(
        self,
        *,
        namespace: str,
        key: str,
        name: str,
        description: str,
        type_name: str = TEXT_FIELD_TYPE,
        owner_type: str = OWNER_CUSTOMER,
    ) -> Dict[str, Any]:
        definition = {
            "name": name,
            "namespace": namespace,
            "key": key,
            "description": description,
            "type": type_name,
            "ownerType": owner_type,
        }
        data = self.execute(DEFINITION_CREATE, {"definition": definition})
        return data.get("metafieldDefinitionCreate") or {}

    def list_metafield_definitions(self, *, namespace: str, owner_type: str = OWNER_CUSTOMER) -> List[Dict[str, Any]]:
        nodes: List[Dict[str, Any]] = []
        after: Optional[str] = None
        while True:
            data = self.execute(
                DEFINITIONS_LIST, {"ownerType": owner_type, "namespace": namespace, "after": after}
            )
            conn = data.get("metafieldDefinitions") or {}
            nodes.extend(edge["node"] for edge in conn.get("edges") or [])
            page = conn.get("pageInfo") or {}
            if not page.get("hasNextPage"):
                return nodes
            after = page.get("endCursor")

    def delete_metafield_definition(self, definition_id: str, *, delete_associated: bool = True) -> Dict[str, Any]:
        data = self.execute(
            DEFINITION_DELETE,
            {"id": definition_id, "deleteAllAssociatedMetafields": delete_associated},
        )
        return data.get("metafieldDefinitionDelete") or {}

    # -- metafield values ------------------------------------------------

    def set_metafields(self, metafields: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Write metafields in chunks of Shopify's per-call limit.

        Returns the merged `{"metafields": [...], "userErrors": [...]}`.
        """
        written: List[Dict[str, Any]] = []
        user_errors: List[Dict[str, Any]] = []
        for start in range(0, len(metafields), METAFIELDS_SET_LIMIT):
            chunk = metafields[start:start + METAFIELDS_SET_LIMIT]
            data = self.execute(METAFIELDS_SET, {"metafields": chunk})
            result = data.get("metafieldsSet") or {}
            written.extend(result.get("metafields") or [])
            user_errors.extend(result.get("userErrors") or [])
        return {"metafields": written, "userErrors": user_errors}

    def customer_metafields(self, customer_id: object, *, namespace: str) -> Dict[str, str]:
        """Return `{key: value}` for the customer's metafields in `namespace`.

        A customer Shopify does not know has no metafields.
        """
        values: Dict[str, str] = {}
        after: Optional[str] = None
        gid = customer_gid(customer_id)
        while True:
            data = self.execute(CUSTOMER_METAFIELDS, {"id": gid, "namespace": namespace, "after": after})
            customer = data.get("customer")
            if customer is None:
                logger.info("shopify.customer_missing shop=%s customer=%s", self.shop, gid)
                return values
            conn = customer.get("metafields") or {}
            for edge in conn.get("edges") or []:
                node = edge.get("node") or {}
                if node.get("namespace") == namespace and node.get("key"):
                    values[str(node["key"])] = "" if node.get("value") is None else str(node["value"])
            page = conn.get("pageInfo") or {}
            if not page.get("hasNextPage"):
                return values
            after = page.get("endCursor")

    # -- orders ----------------------------------------------------------

    def order_customer(self, order_id: object) -> Optional[Dict[str, Any]]:
        data = self.execute(ORDER_CUSTOMER, {"orderId": order_gid(order_id)})
        return data.get("order")


ClientFactory = Callable[[str, str], AdminApiClient]


def client_factory_from_config(config: ShopifyConfig) -> ClientFactory:
    def build(shop: str, access_token: str) -> AdminApiClient:
        return AdminApiClient(
            shop,
            access_token,
            api_version=config.api_version,
            timeout=config.http_timeout,
        )

    return build


__all__ = [
    "AdminApiClient",
    "ClientFactory",
    "CUSTOMER_GID_PREFIX",
    "OWNER_CUSTOMER",
    "TEXT_FIELD_TYPE",
    "client_factory_from_config",
    "customer_gid",
    "order_gid",
]
