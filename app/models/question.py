"""Pydantic models for stored survey questions.

A question is a tagged variant over its `dataType`: open questions carry no
options, choice questions always carry a non-empty option list. Records are
stored and served with camelCase keys and newline-delimited options, the
shape the checkout extension renders.
"""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class _QuestionBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    title: str
    question: str
    is_active: bool = Field(default=True, alias="isActive")
    created_at: str = Field(alias="createdAt")

    def to_record(self) -> dict[str, Any]:
        raise NotImplementedError


class OpenQuestion(_QuestionBase):
    data_type: Literal["text", "number", "email", "date", "textarea"] = Field(alias="dataType")

    @property
    def options(self) -> None:
        return None

    def to_record(self) -> dict[str, Any]:
        record = self.model_dump(by_alias=True)
        record["options"] = None
        return record


class ChoiceQuestion(_QuestionBase):
    data_type: Literal["select", "multiselect"] = Field(alias="dataType")
    options: list[str]

    @field_validator("options", mode="before")
    @classmethod
    def split_options(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split("\n")
        if isinstance(v, (list, tuple)):
            return [str(o).strip() for o in v if o is not None and str(o).strip()]
        return v

    @field_validator("options")
    @classmethod
    def options_must_be_non_empty(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("Options are required for select questions")
        return v

    def to_record(self) -> dict[str, Any]:
        record = self.model_dump(by_alias=True)
        record["options"] = "\n".join(self.options)
        return record


Question = Annotated[Union[OpenQuestion, ChoiceQuestion], Field(discriminator="data_type")]

_QUESTION = TypeAdapter(Question)
_QUESTION_LIST = TypeAdapter(list[Question])


def parse_question(data: dict[str, Any]) -> OpenQuestion | ChoiceQuestion:
    return _QUESTION.validate_python(data)


def load_questions(raw: str | None) -> list[OpenQuestion | ChoiceQuestion]:
    """Decode the JSON-encoded question list stored for a shop."""
    return _QUESTION_LIST.validate_python(json.loads(raw or "[]"))


def dump_questions(questions: list[OpenQuestion | ChoiceQuestion]) -> str:
    return json.dumps([q.to_record() for q in questions])


__all__ = [
    "ChoiceQuestion",
    "OpenQuestion",
    "Question",
    "dump_questions",
    "load_questions",
    "parse_question",
]
