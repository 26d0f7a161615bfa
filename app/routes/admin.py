"""Embedded admin endpoints: question management and repair queue.

Requests are authenticated with the App Bridge session token; the shop is
taken from the token, never from the request body.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool

from app.config import AppConfig
from app.http.dependencies import current_shop, get_client_factory, get_config
from app.logic import question_admin, repair_queue
from app.logic.errors import ValidationError
from app.logic.repairs import run_repairs
from app.logic.shopify_client import ClientFactory

router = APIRouter(prefix="/app")
logger = logging.getLogger(__name__)

QUESTIONS_PATH = "/app/questions"


def _field(form: Any, name: str) -> str | None:
    value = form.get(name)
    return None if value is None else str(value)


@router.get("/questions", summary="List the shop's questions")
def list_questions(
    shop: str = Depends(current_shop),
    config: AppConfig = Depends(get_config),
) -> Dict[str, Any]:
    return question_admin.load_admin_view(shop, default_count=config.survey.default_count)


@router.post("/questions", summary="Create, update, delete or toggle questions")
async def question_action(
    request: Request,
    shop: str = Depends(current_shop),
    config: AppConfig = Depends(get_config),
    client_factory: ClientFactory = Depends(get_client_factory),
):
    form = await request.form()
    action = _field(form, "action")
    default_count = config.survey.default_count
    logger.info("admin.question_action shop=%s action=%s", shop, action)

    if action == "updateCount":
        count = await run_in_threadpool(
            question_admin.update_count, shop, form.get("count"), default_count=default_count
        )
        return {"success": True, "message": "Count updated successfully!", "count": count}

    if action == "create":
        await run_in_threadpool(
            question_admin.create_question,
            shop,
            title=_field(form, "title"),
            question=_field(form, "question"),
            data_type=_field(form, "dataType"),
            options=_field(form, "options"),
            form_type=_field(form, "formType"),
            default_count=default_count,
        )
    elif action == "update":
        await run_in_threadpool(
            question_admin.update_question,
            shop,
            _field(form, "id"),
            title=_field(form, "title"),
            question=_field(form, "question"),
            data_type=_field(form, "dataType"),
            options=_field(form, "options"),
            default_count=default_count,
        )
    elif action == "delete":
        await run_in_threadpool(
            question_admin.delete_question,
            shop,
            _field(form, "id"),
            client_factory=client_factory,
            namespace=config.shopify.metafield_namespace,
            default_count=default_count,
        )
    elif action == "toggle":
        await run_in_threadpool(
            question_admin.toggle_question, shop, _field(form, "id"), default_count=default_count
        )
    else:
        raise ValidationError("Invalid action")

    return RedirectResponse(QUESTIONS_PATH, status_code=303)


@router.get("/repairs", summary="Pending metafield definition repairs")
def list_repairs(shop: str = Depends(current_shop)) -> Dict[str, Any]:
    return {"repairs": [t.to_dict() for t in repair_queue.list_pending(shop)]}


@router.post("/repairs", summary="Retry pending metafield definition repairs")
def retry_repairs(
    shop: str = Depends(current_shop),
    config: AppConfig = Depends(get_config),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> Dict[str, Any]:
    return run_repairs(shop, client_factory=client_factory, namespace=config.shopify.metafield_namespace)


__all__ = ["router"]
