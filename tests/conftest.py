"""Test bootstrap.

The app runs against a file-backed SQLite database created once per session
and wiped before every test. Shopify is replaced by `FakeShopify`, an
in-memory GraphQL Admin API served through `httpx.MockTransport`, so every
outbound call made by `AdminApiClient` lands here and can be inspected or
made to fail.
"""

from __future__ import annotations

import json
import os
import pathlib
import re
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import jwt
import pytest

_ROOT = pathlib.Path(__file__).resolve().parents[1]
_DB_FILE = _ROOT / "tmp" / "functional_tests.db"
_DB_FILE.parent.mkdir(parents=True, exist_ok=True)
if _DB_FILE.exists():
    _DB_FILE.unlink()

# Point the app at the test database before anything from `app` is imported
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
os.environ["AUTO_APPLY_MIGRATIONS"] = "0"

SHOP = "test-shop.myshopify.com"
ACCESS_TOKEN = "shpat_test_token"
API_KEY = "test-api-key"
API_SECRET = "test-api-secret-0123456789abcdef0123"
CUSTOMER_ID = "123456789"
CUSTOMER_GID = f"gid://shopify/Customer/{CUSTOMER_ID}"

_OPERATION = re.compile(r"(?:query|mutation)\s+(\w+)")


class FakeShopify:
    """In-memory stand-in for the Shopify GraphQL Admin API.

    `failures` maps an operation name to one of:
    ("http", status), ("transport", None), ("graphql", errors) or
    ("user_errors", errors).
    """

    def __init__(self) -> None:
        self.definitions: Dict[str, Dict[str, Any]] = {}
        self.values: Dict[str, Dict[Tuple[str, str], str]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.missing_customers: set[str] = set()
        self.failures: Dict[str, Tuple[str, Any]] = {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.tokens: List[str] = []
        self.page_size = 250
        self._next_id = 1

    # -- helpers used by tests -------------------------------------------

    def set_value(self, customer_gid: str, key: str, value: str, namespace: str = "custom") -> None:
        self.values.setdefault(customer_gid, {})[(namespace, key)] = value

    def value(self, customer_gid: str, key: str, namespace: str = "custom") -> Optional[str]:
        return self.values.get(customer_gid, {}).get((namespace, key))

    def add_definition(self, key: str, namespace: str = "custom", name: str = "") -> str:
        definition_id = f"gid://shopify/MetafieldDefinition/{self._next_id}"
        self._next_id += 1
        self.definitions[definition_id] = {"id": definition_id, "key": key, "namespace": namespace, "name": name}
        return definition_id

    def definition(self, key: str, namespace: str = "custom") -> Optional[Dict[str, Any]]:
        for node in self.definitions.values():
            if node["key"] == key and node["namespace"] == namespace:
                return node
        return None

    def calls_to(self, operation: str) -> List[Dict[str, Any]]:
        return [variables for name, variables in self.calls if name == operation]

    # -- transport ---------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        operation = _OPERATION.search(body["query"]).group(1)
        variables = body.get("variables") or {}
        self.calls.append((operation, variables))
        self.tokens.append(request.headers.get("X-Shopify-Access-Token", ""))

        failure = self.failures.get(operation)
        if failure is not None:
            kind, payload = failure
            if kind == "transport":
                raise httpx.ConnectError("connection refused", request=request)
            if kind == "http":
                return httpx.Response(payload, text="upstream failure")
            if kind == "graphql":
                return httpx.Response(200, json={"errors": payload})
            if kind == "user_errors":
                return httpx.Response(200, json={"data": {operation: {"userErrors": payload}}})

        data = getattr(self, f"_op_{operation}")(variables)
        return httpx.Response(200, json={"data": data})

    def _page(self, items: List[Any], after: Optional[str]) -> Tuple[List[Any], Dict[str, Any]]:
        start = int(after) if after else 0
        end = start + self.page_size
        return items[start:end], {"hasNextPage": end < len(items), "endCursor": str(end)}

    def _op_metafieldDefinitionCreate(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        d = variables["definition"]
        if self.definition(d["key"], d["namespace"]) is not None:
            return {
                "metafieldDefinitionCreate": {
                    "createdDefinition": None,
                    "userErrors": [
                        {
                            "field": ["definition", "key"],
                            "message": "Key is in use for Customer metafields on the 'custom' namespace.",
                            "code": "TAKEN",
                        }
                    ],
                }
            }
        definition_id = self.add_definition(d["key"], d["namespace"], d["name"])
        self.definitions[definition_id]["description"] = d["description"]
        return {
            "metafieldDefinitionCreate": {
                "createdDefinition": {k: self.definitions[definition_id][k] for k in ("id", "key", "namespace", "name")},
                "userErrors": [],
            }
        }

    def _op_getMetafieldDefinitions(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        nodes = [
            {"id": n["id"], "key": n["key"], "namespace": n["namespace"]}
            for n in self.definitions.values()
            if n["namespace"] == variables.get("namespace")
        ]
        page, info = self._page(nodes, variables.get("after"))
        return {"metafieldDefinitions": {"edges": [{"node": n} for n in page], "pageInfo": info}}

    def _op_metafieldDefinitionDelete(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        node = self.definitions.pop(variables["id"], None)
        if node is None:
            return {
                "metafieldDefinitionDelete": {
                    "deletedDefinitionId": None,
                    "userErrors": [{"field": ["id"], "message": "Definition not found", "code": "NOT_FOUND"}],
                }
            }
        if variables.get("deleteAllAssociatedMetafields"):
            for values in self.values.values():
                values.pop((node["namespace"], node["key"]), None)
        return {"metafieldDefinitionDelete": {"deletedDefinitionId": node["id"], "userErrors": []}}

    def _op_metafieldsSet(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        written = []
        for m in variables["metafields"]:
            self.set_value(m["ownerId"], m["key"], m["value"], m["namespace"])
            written.append(
                {
                    "id": f"gid://shopify/Metafield/{len(written) + 1}",
                    "namespace": m["namespace"],
                    "key": m["key"],
                    "value": m["value"],
                }
            )
        return {"metafieldsSet": {"metafields": written, "userErrors": []}}

    def _op_getCustomerMetafields(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        gid = variables["id"]
        if gid in self.missing_customers:
            return {"customer": None}
        nodes = [
            {"key": key, "value": value, "namespace": namespace}
            for (namespace, key), value in self.values.get(gid, {}).items()
            if namespace == variables.get("namespace")
        ]
        page, info = self._page(nodes, variables.get("after"))
        return {"customer": {"id": gid, "metafields": {"edges": [{"node": n} for n in page], "pageInfo": info}}}

    def _op_getCustomerFromOrder(self, variables: Dict[str, Any]) -> Dict[str, Any]:
        return {"order": self.orders.get(variables["orderId"])}


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap() -> None:
    """Apply the schema once for the shared test database."""
    from app.db.base import get_engine
    from app.db.migrations_runner import apply_migrations

    apply_migrations(get_engine(os.environ["TEST_DATABASE_URL"]))
    yield


@pytest.fixture(autouse=True)
def clean_tables() -> None:
    from sqlalchemy import text as sql_text

    from app.db.base import get_engine

    with get_engine(os.environ["TEST_DATABASE_URL"]).begin() as conn:
        for table in ("store_questions", "shop_sessions", "metafield_repairs"):
            conn.execute(sql_text(f"DELETE FROM {table}"))
    yield


@pytest.fixture
def fake_shopify() -> FakeShopify:
    return FakeShopify()


@pytest.fixture
def client_factory(fake_shopify: FakeShopify) -> Callable[[str, str], Any]:
    from app.logic.shopify_client import AdminApiClient

    def build(shop: str, access_token: str) -> AdminApiClient:
        return AdminApiClient(shop, access_token, transport=httpx.MockTransport(fake_shopify.handler))

    return build


@pytest.fixture
def app_config():
    from app.config import AppConfig, DatabaseConfig, ShopifyConfig, SurveyConfig

    return AppConfig(
        database=DatabaseConfig(dsn=os.environ["TEST_DATABASE_URL"], auto_apply_migrations=False),
        shopify=ShopifyConfig(api_key=API_KEY, api_secret=API_SECRET),
        survey=SurveyConfig(),
    )


@pytest.fixture
def client(app_config, client_factory):
    from fastapi.testclient import TestClient

    from app.main import create_app

    with TestClient(create_app(app_config, client_factory=client_factory)) as test_client:
        yield test_client


@pytest.fixture
def installed_shop() -> str:
    """Store an offline session so the shop can reach the Admin API."""
    from app.logic.repository_sessions import save_session

    save_session(f"offline_{SHOP}", SHOP, ACCESS_TOKEN)
    return SHOP


def make_session_token(
    shop: str = SHOP, *, secret: str = API_SECRET, audience: str = API_KEY, expires_in: int = 60
) -> str:
    now = int(time.time())
    claims = {
        "iss": f"https://{shop}/admin",
        "dest": f"https://{shop}",
        "aud": audience,
        "sub": "42",
        "exp": now + expires_in,
        "nbf": now - 5,
        "iat": now - 5,
        "jti": "b9e1c6f0-test",
        "sid": "session-test",
    }
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def session_token_factory() -> Callable[..., str]:
    return make_session_token


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_session_token()}"}


@pytest.fixture
def add_question() -> Callable[..., Any]:
    """Create a question through the admin logic layer."""
    from app.logic import question_admin

    def add(title: str, data_type: str = "text", options: Optional[str] = None, *, question: str = "?"):
        return question_admin.create_question(
            SHOP, title=title, question=question or title, data_type=data_type, options=options
        )

    return add


@pytest.fixture
def set_count() -> Callable[[int], None]:
    """Set the shop's display count directly, bypassing admin validation."""
    from app.logic.repository_store import ensure_store, save_count

    def apply(count: int) -> None:
        store = ensure_store(SHOP)
        save_count(SHOP, count, expected_version=store.version)

    return apply
