"""Public endpoints called by the checkout thank-you extension."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Type, TypeVar

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from app.config import AppConfig
from app.http.dependencies import get_client_factory, get_config
from app.logic.answer_writer import save_date_of_birth, submit_answers
from app.logic.customer_lookup import customer_from_order
from app.logic.errors import ValidationError
from app.logic.question_selector import select_questions
from app.logic.shopify_client import ClientFactory
from app.models.survey_payloads import AnswerSubmission, DateOfBirthSubmission

router = APIRouter(prefix="/app")
logger = logging.getLogger(__name__)

_Payload = TypeVar("_Payload", bound=BaseModel)


async def _read_payload(request: Request, model: Type[_Payload]) -> _Payload:
    # The extension may post JSON as text/plain to avoid a preflight
    raw = await request.body()
    try:
        data = json.loads(raw.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError("Request body must be valid JSON") from None
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError("Invalid request body", details=exc.errors(include_url=False)) from None


@router.get("/getquestions", summary="Unanswered questions for a customer")
def get_questions(
    customer_id: Optional[str] = Query(default=None, alias="customerId"),
    shop: Optional[str] = Query(default=None),
    config: AppConfig = Depends(get_config),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> Dict[str, Any]:
    questions = select_questions(
        shop,
        customer_id,
        client_factory=client_factory,
        namespace=config.shopify.metafield_namespace,
    )
    return {"questions": [q.to_record() for q in questions]}


@router.post("/getquestions", summary="Save survey answers as customer metafields")
async def post_answers(
    request: Request,
    config: AppConfig = Depends(get_config),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> Dict[str, Any]:
    payload = await _read_payload(request, AnswerSubmission)
    outcome = await run_in_threadpool(
        submit_answers,
        payload.shop,
        payload.customer_id,
        payload.answers,
        client_factory=client_factory,
        namespace=config.shopify.metafield_namespace,
    )
    return outcome.to_body()


@router.get("/getcustomerid", summary="Resolve the customer who placed an order")
def get_customer_id(
    order_id: Optional[str] = Query(default=None, alias="orderId"),
    shop: Optional[str] = Query(default=None),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> Dict[str, Any]:
    return customer_from_order(shop, order_id, client_factory=client_factory)


@router.get("/apisavedob", include_in_schema=False)
def date_of_birth_info() -> Dict[str, str]:
    return {"message": "Customer metafield API endpoint"}


@router.post("/apisavedob", summary="Save a customer's date of birth")
async def post_date_of_birth(
    request: Request,
    config: AppConfig = Depends(get_config),
    client_factory: ClientFactory = Depends(get_client_factory),
) -> Dict[str, Any]:
    payload = await _read_payload(request, DateOfBirthSubmission)
    return await run_in_threadpool(
        save_date_of_birth,
        payload.shop,
        payload.customer_id,
        payload.dob,
        client_factory=client_factory,
        namespace=config.shopify.metafield_namespace,
    )


__all__ = ["router"]
