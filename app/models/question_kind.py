"""QuestionKind constants for the data types a survey question may take.

Provides a simple constants container instead of an Enum so the values can
be compared directly against stored JSON strings.
"""

from __future__ import annotations


class QuestionKind:
    TEXT = "text"
    NUMBER = "number"
    EMAIL = "email"
    DATE = "date"
    TEXTAREA = "textarea"
    SELECT = "select"
    MULTISELECT = "multiselect"

    OPEN = frozenset({TEXT, NUMBER, EMAIL, DATE, TEXTAREA})
    CHOICE = frozenset({SELECT, MULTISELECT})
    ALL = OPEN | CHOICE


__all__ = ["QuestionKind"]
