"""
Assessment questions and answer keys.

Questions and answer keys are stored as JSON text (`Assessment.description`
and `AssessmentAnswer.correct_answer`). This module owns the structured form
and the conversion to and from that text so nothing else parses it.

Description format:
    {"questions": [{"question", "type", "options", "points"}, ...],
     "totalQuestions": n}

Answer key format:
    {"0": "Paris", "2": "True"}   (question index -> accepted answer)
"""

from __future__ import annotations

import json
import logging
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)


class QuestionType(StrEnum):
    MULTIPLE_CHOICE = "multiple_choice"
    TEXT = "text"
    TRUE_FALSE = "true_false"


class Question(BaseModel):
    """A single question embedded in a quiz-like assessment."""

    question: str = Field(..., min_length=1)
    type: QuestionType = QuestionType.TEXT
    options: list[str] | None = None
    points: float = Field(default=1, ge=0)

    @model_validator(mode="after")
    def check_options(self) -> Question:
        if self.type == QuestionType.MULTIPLE_CHOICE:
            options = [o for o in (self.options or []) if o.strip()]
            if len(options) < 2:
                raise ValueError("multiple_choice questions need at least two options")
            self.options = options
        return self


class AnswerKey(BaseModel):
    """Accepted answers keyed by zero-based question index."""

    answers: dict[int, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def drop_blank_answers(self) -> AnswerKey:
        self.answers = {
            index: answer.strip() for index, answer in self.answers.items() if answer.strip()
        }
        return self

    def validate_against(self, questions: list[Question]) -> None:
        """Raise ValueError if an answer refers to a question that does not exist."""
        for index in self.answers:
            if index < 0 or index >= len(questions):
                raise ValueError(f"Answer given for unknown question index {index}")

    def to_json(self) -> str:
        return json.dumps({str(index): answer for index, answer in sorted(self.answers.items())})

    @classmethod
    def from_json(cls, raw: str | None) -> AnswerKey:
        """Decode a stored answer key.

        Empty input gives an empty key. A value that is not a JSON object is a
        legacy single-answer key and is read as the answer to question 0.
        """
        if not raw:
            return cls()
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return cls(answers={0: raw})
        if not isinstance(parsed, dict):
            return cls(answers={0: raw})
        answers: dict[int, str] = {}
        for key, value in parsed.items():
            try:
                answers[int(key)] = str(value)
            except (TypeError, ValueError):
                logger.warning(f"Skipping non-numeric answer key index: {key!r}")
        return cls(answers=answers)


def encode_questions(questions: list[Question]) -> str:
    """Serialize questions into assessment description text."""
    payload: dict[str, Any] = {
        "questions": [q.model_dump(mode="json", exclude_none=True) for q in questions],
        "totalQuestions": len(questions),
    }
    return json.dumps(payload)


def decode_questions(description: str | None) -> list[Question]:
    """Extract questions from description text.

    Plain-text descriptions and malformed JSON yield an empty list.
    """
    if not description:
        return []
    try:
        parsed = json.loads(description)
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, dict) or not isinstance(parsed.get("questions"), list):
        return []
    try:
        return [Question.model_validate(item) for item in parsed["questions"]]
    except ValidationError as e:
        logger.warning(f"Stored questions failed validation: {e.error_count()} errors")
        return []
