"""Retry queued metafield definition repairs for a shop."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from app.logic import repair_queue
from app.logic.errors import SurveyError
from app.logic.metafield_definitions import create_definition, delete_definition
from app.logic.shop_access import open_client
from app.logic.shopify_client import ClientFactory

logger = logging.getLogger(__name__)


def run_repairs(shop: str, *, client_factory: ClientFactory, namespace: str = "custom") -> Dict[str, Any]:
    """Retry every pending task once.

    Succeeded tasks are removed; failed ones keep their row with the attempt
    counter bumped and the latest error recorded.
    """
    tasks = repair_queue.list_pending(shop)
    if not tasks:
        return {"resolved": [], "failed": []}

    resolved: List[Dict[str, Any]] = []
    failed: List[Dict[str, Any]] = []
    with open_client(shop, client_factory) as client:
        for task in tasks:
            try:
                if task.action == repair_queue.CREATE_DEFINITION:
                    create_definition(client, namespace=namespace, key=task.metafield_key)
                else:
                    delete_definition(client, namespace=namespace, key=task.metafield_key)
            except SurveyError as exc:
                error = f"{exc.message}: {exc.details}" if exc.details else exc.message
                repair_queue.record_failure(task.id, error)
                failed.append({**task.to_dict(), "attempts": task.attempts + 1, "lastError": error})
                continue
            repair_queue.resolve(shop, task.action, task.metafield_key)
            resolved.append(task.to_dict())

    logger.info("repairs.run shop=%s resolved=%s failed=%s", shop, len(resolved), len(failed))
    return {"resolved": resolved, "failed": failed}


__all__ = ["run_repairs"]
