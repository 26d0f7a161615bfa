"""Headless checkout survey client.

Drives the same flow as the thank-you page extension: load the customer's
unanswered questions, present them one at a time, and save each answer
before moving on. When the buyer identity is unknown the customer is looked
up from the order. The backend address comes from configuration.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx

from app.config import AppConfig
from app.logic.shopify_client import CUSTOMER_GID_PREFIX

logger = logging.getLogger(__name__)

SAVE_FAILED = "Failed to save answer. Please try again."
ANSWER_REQUIRED = "Please provide an answer before proceeding"


class WizardError(Exception):
    pass


class WizardLoadError(WizardError):
    pass


class WizardSaveError(WizardError):
    pass


class WizardInputError(WizardError, ValueError):
    pass


def _numeric_customer_id(customer_id: object) -> str:
    return str(customer_id).replace(CUSTOMER_GID_PREFIX, "").strip()


class SurveyWizard:
    def __init__(
        self,
        base_url: str,
        shop: str,
        *,
        customer_id: Optional[str] = None,
        order_id: Optional[str] = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.shop = shop
        self.customer_id = _numeric_customer_id(customer_id) if customer_id else None
        self.order_id = order_id
        self.questions: List[Dict[str, Any]] = []
        self.answers: Dict[str, str] = {}
        self.index = 0
        self.completed = False
        self.error = ""
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: AppConfig, shop: str, **kwargs: Any) -> "SurveyWizard":
        return cls(config.survey.backend_url, shop, **kwargs)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SurveyWizard":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _resolve_customer(self) -> Optional[str]:
        if self.customer_id or not self.order_id:
            return self.customer_id
        response = self._http.get("/app/getcustomerid", params={"orderId": self.order_id, "shop": self.shop})
        body = response.json()
        if not response.is_success or not body.get("customerId"):
            raise WizardLoadError(body.get("error") or "Failed to resolve customer")
        self.customer_id = _numeric_customer_id(body["customerId"])
        return self.customer_id

    def load(self) -> List[Dict[str, Any]]:
        """Fetch unanswered questions; an empty list means nothing to ask."""
        try:
            customer_id = self._resolve_customer()
            if not customer_id:
                self.questions = []
                return self.questions
            response = self._http.get(
                "/app/getquestions", params={"customerId": customer_id, "shop": self.shop}
            )
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("wizard.load_failed shop=%s error=%s", self.shop, exc)
            self.error = "Network error occurred"
            raise WizardLoadError(self.error) from exc

        if not response.is_success or "questions" not in body:
            logger.error("wizard.load_rejected shop=%s error=%s", self.shop, body.get("error"))
            self.error = "Failed to load questions"
            raise WizardLoadError(self.error)
        self.questions = list(body["questions"])
        self.index = 0
        self.completed = False
        return self.questions

    @property
    def current(self) -> Optional[Dict[str, Any]]:
        if self.completed or self.index >= len(self.questions):
            return None
        return self.questions[self.index]

    @staticmethod
    def options(question: Dict[str, Any]) -> List[str]:
        return [o.strip() for o in str(question.get("options") or "").split("\n") if o.strip()]

    def answer(self, value: Union[str, Sequence[str]]) -> Optional[Dict[str, Any]]:
        """Save an answer for the current question and return the next one.

        The wizard only advances after the backend confirms the save.
        """
        question = self.current
        if question is None:
            raise WizardError("No question to answer")
        text = ", ".join(value) if isinstance(value, (list, tuple)) else str(value or "")
        if not text.strip():
            self.error = ANSWER_REQUIRED
            raise WizardInputError(ANSWER_REQUIRED)

        title = question["title"]
        try:
            response = self._http.post(
                "/app/getquestions",
                json={"customerId": self.customer_id, "answers": {title: text}, "shop": self.shop},
            )
        except httpx.HTTPError as exc:
            logger.error("wizard.save_failed shop=%s title=%s error=%s", self.shop, title, exc)
            self.error = SAVE_FAILED
            raise WizardSaveError(SAVE_FAILED) from exc
        if not response.is_success:
            logger.error("wizard.save_rejected shop=%s title=%s status=%s", self.shop, title, response.status_code)
            self.error = SAVE_FAILED
            raise WizardSaveError(SAVE_FAILED)

        self.error = ""
        self.answers[title] = text
        if self.index < len(self.questions) - 1:
            self.index += 1
        else:
            self.completed = True
        return self.current


__all__ = [
    "SurveyWizard",
    "WizardError",
    "WizardInputError",
    "WizardLoadError",
    "WizardSaveError",
]
