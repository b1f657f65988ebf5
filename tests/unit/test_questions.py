"""
Unit Tests for Questions and Answer Keys

Tests the structured question model and the JSON text stored in
Assessment.description / AssessmentAnswer.correct_answer.
"""

import json

import pytest
from pydantic import ValidationError

from cohortly.core.questions import (
    AnswerKey,
    Question,
    QuestionType,
    decode_questions,
    encode_questions,
)


class TestQuestion:
    """Test question validation."""

    def test_text_question_defaults(self):
        question = Question(question="What is a p-value?")

        assert question.type == QuestionType.TEXT
        assert question.options is None
        assert question.points == 1

    def test_multiple_choice_requires_two_options(self):
        with pytest.raises(ValidationError, match="at least two options"):
            Question(question="Pick one", type="multiple_choice", options=["Only"])

    def test_multiple_choice_drops_blank_options(self):
        question = Question(
            question="Capital of France?",
            type="multiple_choice",
            options=["Paris", "  ", "Lyon"],
        )
        assert question.options == ["Paris", "Lyon"]

    def test_negative_points_rejected(self):
        with pytest.raises(ValidationError):
            Question(question="Q", points=-1)


class TestDescriptionCodec:
    """Test encoding questions into description text and back."""

    def test_encode_includes_total(self):
        questions = [
            Question(question="2 + 2?", type="text"),
            Question(question="Earth is round", type="true_false", points=2),
        ]

        payload = json.loads(encode_questions(questions))

        assert payload["totalQuestions"] == 2
        assert payload["questions"][1] == {
            "question": "Earth is round",
            "type": "true_false",
            "points": 2.0,
        }

    def test_decode_reads_encoded_questions(self):
        questions = [
            Question(question="Capital?", type="multiple_choice", options=["Paris", "Rome"]),
        ]

        decoded = decode_questions(encode_questions(questions))

        assert decoded == questions

    @pytest.mark.parametrize(
        "description",
        [None, "", "Write an essay about your week", "[1, 2]", '{"questions": "nope"}'],
    )
    def test_decode_non_question_descriptions(self, description):
        """Plain text and malformed JSON yield no questions."""
        assert decode_questions(description) == []

    def test_decode_invalid_question_entries(self):
        description = json.dumps({"questions": [{"type": "text"}], "totalQuestions": 1})
        assert decode_questions(description) == []


class TestAnswerKey:
    """Test answer key parsing and validation."""

    def test_blank_answers_dropped(self):
        key = AnswerKey(answers={0: "Paris", 1: "   ", 2: " True "})
        assert key.answers == {0: "Paris", 2: "True"}

    def test_to_json_uses_string_indexes(self):
        key = AnswerKey(answers={2: "b", 0: "a"})
        assert json.loads(key.to_json()) == {"0": "a", "2": "b"}

    def test_from_json_object(self):
        key = AnswerKey.from_json('{"0": "Paris", "3": "42"}')
        assert key.answers == {0: "Paris", 3: "42"}

    def test_from_json_stringifies_values(self):
        key = AnswerKey.from_json('{"1": 42, "2": true}')
        assert key.answers == {1: "42", 2: "True"}

    def test_from_json_legacy_plain_value(self):
        """A non-JSON stored key is the answer to the first question."""
        assert AnswerKey.from_json("Paris").answers == {0: "Paris"}

    def test_from_json_non_object(self):
        assert AnswerKey.from_json("42").answers == {0: "42"}

    def test_from_json_empty(self):
        assert AnswerKey.from_json(None).answers == {}
        assert AnswerKey.from_json("").answers == {}

    def test_from_json_skips_non_numeric_indexes(self):
        key = AnswerKey.from_json('{"0": "a", "first": "b"}')
        assert key.answers == {0: "a"}

    def test_validate_against_questions(self):
        questions = [Question(question="One"), Question(question="Two")]

        AnswerKey(answers={0: "a", 1: "b"}).validate_against(questions)

        with pytest.raises(ValueError, match="unknown question index 2"):
            AnswerKey(answers={2: "c"}).validate_against(questions)
