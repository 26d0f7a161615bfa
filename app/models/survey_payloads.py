"""Pydantic models for the JSON bodies posted by the checkout extension.

Fields are optional at the schema level; required-field checks happen in
the logic layer so missing values produce the same `{error}` envelope as
every other validation failure.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _CheckoutPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    customer_id: str | None = Field(default=None, alias="customerId")
    shop: str | None = None

    @field_validator("customer_id", mode="before")
    @classmethod
    def coerce_customer_id(cls, v: Any) -> Any:
        # The extension may send numeric ids
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class AnswerSubmission(_CheckoutPayload):
    answers: Any = None


class DateOfBirthSubmission(_CheckoutPayload):
    dob: str | None = None


__all__ = ["AnswerSubmission", "DateOfBirthSubmission"]
