"""
Validation for quiz and question authoring payloads.

Payload keys are accepted in snake_case or camelCase
(``max_questions`` or ``maxQuestions``).
"""
import re
from datetime import datetime
from typing import Any, Optional

from quizhub.quiz.types import QuestionType

_INTEGER_RE = re.compile(r"-?\d+", re.ASCII)


def _get(data: dict, snake: str, camel: Optional[str] = None, default: Any = None) -> Any:
    if snake in data:
        return data[snake]
    if camel and camel in data:
        return data[camel]
    return default


def _has(data: dict, snake: str, camel: Optional[str] = None) -> bool:
    return snake in data or bool(camel and camel in data)


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER_RE.fullmatch(value.strip()):
        return int(value.strip())
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


class QuizValidator:
    """
    Validator for quiz and question payloads.
    """

    NAME_MAX_LENGTH = 255
    DESCRIPTION_MAX_LENGTH = 1000
    TIME_LIMIT_RANGE = (1, 480)  # Minutes, at most 8 hours
    CUTOFF_RANGE = (0, 100)
    MAX_QUESTIONS_RANGE = (1, 100)

    QUESTION_TEXT_MIN_LENGTH = 5
    MARKS_RANGE = (1, 10)
    OPTIONS_RANGE = (2, 6)
    EXPLANATION_MAX_LENGTH = 500

    @classmethod
    def _check_int(cls, errors: list[str], label: str, value: Any, bounds: tuple[int, int]) -> Optional[int]:
        number = _as_int(value)
        low, high = bounds
        if number is None or not low <= number <= high:
            errors.append(f"{label} must be an integer between {low} and {high}")
            return None
        return number

    @classmethod
    def validate_quiz(cls, data: dict, partial: bool = False) -> tuple[dict, list[str]]:
        """
        Validate a quiz payload.

        Args:
            data: Raw payload
            partial: Only validate the keys present (for updates)

        Returns:
            Tuple of (cleaned_data, errors)
        """
        errors: list[str] = []
        cleaned: dict = {}

        if _has(data, 'name') or not partial:
            name = (_get(data, 'name') or '')
            name = name.strip() if isinstance(name, str) else ''
            if not name:
                errors.append("Quiz name is required")
            elif len(name) > cls.NAME_MAX_LENGTH:
                errors.append(f"Quiz name must be at most {cls.NAME_MAX_LENGTH} characters")
            else:
                cleaned['name'] = name

        if _has(data, 'description'):
            description = _get(data, 'description')
            if description is not None and not isinstance(description, str):
                errors.append("Description must be text")
            elif description and len(description) > cls.DESCRIPTION_MAX_LENGTH:
                errors.append(f"Description must be at most {cls.DESCRIPTION_MAX_LENGTH} characters")
            else:
                cleaned['description'] = description or None

        if _has(data, 'time_limit', 'timeLimit'):
            time_limit = _get(data, 'time_limit', 'timeLimit')
            if time_limit in (None, ''):
                cleaned['time_limit'] = None
            else:
                number = cls._check_int(errors, "Time limit", time_limit, cls.TIME_LIMIT_RANGE)
                if number is not None:
                    cleaned['time_limit'] = number

        if _has(data, 'cutoff'):
            number = cls._check_int(errors, "Cutoff", _get(data, 'cutoff'), cls.CUTOFF_RANGE)
            if number is not None:
                cleaned['cutoff'] = number

        if _has(data, 'max_questions', 'maxQuestions'):
            number = cls._check_int(errors, "Max questions", _get(data, 'max_questions', 'maxQuestions'), cls.MAX_QUESTIONS_RANGE)
            if number is not None:
                cleaned['max_questions'] = number

        if _has(data, 'negative_marking', 'negativeMarking'):
            flag = _as_bool(_get(data, 'negative_marking', 'negativeMarking'))
            if flag is None:
                errors.append("Negative marking must be true or false")
            else:
                cleaned['negative_marking'] = flag

        if _has(data, 'answer_release_time', 'answerReleaseTime'):
            release = _get(data, 'answer_release_time', 'answerReleaseTime')
            if release in (None, ''):
                cleaned['answer_release_time'] = None
            elif isinstance(release, datetime):
                cleaned['answer_release_time'] = release
            else:
                try:
                    cleaned['answer_release_time'] = datetime.fromisoformat(str(release))
                except ValueError:
                    errors.append("Answer release time must be an ISO 8601 datetime")

        return cleaned, errors

    @classmethod
    def validate_question(cls, data: dict) -> tuple[dict, list[str]]:
        """
        Validate a question payload, including its correct-option rules.

        mcq and true_false need exactly one correct option (true_false also
        exactly two options); multiple_select needs at least one.

        Returns:
            Tuple of (cleaned_data, errors)
        """
        errors: list[str] = []
        cleaned: dict = {}

        text = _get(data, 'question_text', 'questionText') or ''
        text = text.strip() if isinstance(text, str) else ''
        if len(text) < cls.QUESTION_TEXT_MIN_LENGTH:
            errors.append(f"Question text must be at least {cls.QUESTION_TEXT_MIN_LENGTH} characters")
        cleaned['question_text'] = text

        question_type = _get(data, 'question_type', 'questionType', QuestionType.MCQ)
        if not isinstance(question_type, str) or question_type not in QuestionType.ALL:
            errors.append(f"Question type must be one of: {', '.join(QuestionType.ALL)}")
            question_type = None
        cleaned['question_type'] = question_type

        marks = cls._check_int(errors, "Marks", _get(data, 'marks', default=1), cls.MARKS_RANGE)
        cleaned['marks'] = marks

        explanation = _get(data, 'correct_explanation', 'correctExplanation')
        if explanation and len(str(explanation)) > cls.EXPLANATION_MAX_LENGTH:
            errors.append(f"Explanation must be at most {cls.EXPLANATION_MAX_LENGTH} characters")
        cleaned['correct_explanation'] = explanation or None

        raw_options = _get(data, 'options') or []
        low, high = cls.OPTIONS_RANGE
        if not isinstance(raw_options, list) or not low <= len(raw_options) <= high:
            errors.append(f"A question needs between {low} and {high} options")
            raw_options = raw_options if isinstance(raw_options, list) else []

        options = []
        for index, raw in enumerate(raw_options, start=1):
            if not isinstance(raw, dict):
                errors.append(f"Option {index} is malformed")
                continue
            option_text = raw.get('text', raw.get('option_text'))
            option_text = option_text.strip() if isinstance(option_text, str) else ''
            is_correct = _as_bool(raw.get('is_correct', raw.get('isCorrect')))
            if not option_text:
                errors.append(f"Option {index} text is required")
            if is_correct is None:
                errors.append(f"Option {index} must say whether it is correct")
            options.append({'text': option_text, 'is_correct': bool(is_correct)})
        cleaned['options'] = options

        correct_count = sum(1 for opt in options if opt['is_correct'])
        if question_type in QuestionType.SINGLE_ANSWER_TYPES and options and correct_count != 1:
            errors.append("Single answer questions need exactly one correct option")
        if question_type == QuestionType.MULTIPLE_SELECT and options and correct_count < 1:
            errors.append("Multiple select questions need at least one correct option")
        if question_type == QuestionType.TRUE_FALSE and options and len(options) != 2:
            errors.append("True/false questions need exactly two options")

        return cleaned, errors
