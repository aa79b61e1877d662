"""
Quiz authoring for administrators.

Admins can:
- Create and update quizzes
- Add questions to a quiz's pool
- Edit or remove questions of a pool
- List, inspect and delete quizzes
"""
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from quizhub import db
from quizhub.quiz.exceptions import QuizError, QuizNotFound, ValidationError
from quizhub.quiz.models import (
    Question,
    QuestionOption,
    Quiz,
    QuizQuestion,
    UserAnswer,
    UserQuizQuestion,
)
from quizhub.quiz.validators import QuizValidator

# Question fields an edit may change, as (snake_case, camelCase) keys
_QUESTION_FIELDS = (
    ('question_text', 'questionText'),
    ('question_type', 'questionType'),
    ('marks', None),
    ('correct_explanation', 'correctExplanation'),
    ('options', None),
)


def _get_quiz(quiz_id: int) -> Quiz:
    quiz = db.session.get(Quiz, quiz_id)
    if not quiz:
        raise QuizNotFound(quiz_id)
    return quiz


def create_quiz(data: dict, created_by: int) -> Quiz:
    """
    Create a new quiz.

    Request body:
    {
        "name": "Quiz name",
        "description": "Optional description",
        "time_limit": 30,  // Optional, minutes
        "cutoff": 40,  // Optional, default DEFAULT_CUTOFF
        "max_questions": 10,  // Optional, default DEFAULT_MAX_QUESTIONS
        "negative_marking": false,  // Optional
        "answer_release_time": "2026-01-01T09:00:00"  // Optional
    }
    """
    cleaned, errors = QuizValidator.validate_quiz(data or {})
    if errors:
        raise ValidationError(errors)

    cleaned.setdefault('cutoff', current_app.config.get('DEFAULT_CUTOFF', 0))
    cleaned.setdefault('max_questions', current_app.config.get('DEFAULT_MAX_QUESTIONS', 10))

    try:
        quiz = Quiz(created_by=created_by, **cleaned)
        db.session.add(quiz)
        db.session.commit()
        current_app.logger.info(f"Quiz created: id={quiz.id}, name={quiz.name}, created_by={created_by}")
        return quiz
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error in create_quiz: {str(e)}")
        raise


def update_quiz(quiz_id: int, data: dict) -> Quiz:
    """Update the fields present in ``data``."""
    quiz = _get_quiz(quiz_id)
    cleaned, errors = QuizValidator.validate_quiz(data or {}, partial=True)
    if errors:
        raise ValidationError(errors)

    try:
        for key, value in cleaned.items():
            setattr(quiz, key, value)
        db.session.commit()
        return quiz
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error in update_quiz: {str(e)}")
        raise


def add_question(quiz_id: int, data: dict) -> Question:
    """
    Add a question with its options to the end of a quiz's pool.

    Request body:
    {
        "question_text": "What is 2 + 2?",
        "question_type": "mcq",  // mcq, multiple_select, true_false
        "marks": 1,
        "correct_explanation": "Optional",
        "options": [{"text": "4", "is_correct": true}, {"text": "5", "is_correct": false}]
    }
    """
    quiz = _get_quiz(quiz_id)
    cleaned, errors = QuizValidator.validate_question(data or {})
    if errors:
        raise ValidationError(errors)

    try:
        question = Question(
            question_text=cleaned['question_text'],
            question_type=cleaned['question_type'],
            marks=cleaned['marks'],
            correct_explanation=cleaned['correct_explanation'],
        )
        for index, option in enumerate(cleaned['options']):
            question.options.append(QuestionOption(
                option_text=option['text'],
                is_correct=option['is_correct'],
                order_index=index,
            ))
        db.session.add(question)
        db.session.flush()

        next_order = db.session.query(db.func.max(QuizQuestion.question_order)).filter_by(quiz_id=quiz.id).scalar() or 0
        db.session.add(QuizQuestion(quiz_id=quiz.id, question_id=question.id, question_order=next_order + 1))
        db.session.commit()
        return question
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error in add_question: {str(e)}")
        raise


def remove_question(quiz_id: int, question_id: int) -> None:
    """
    Remove a question from a quiz's pool.

    Attempts that already drew the question keep it.
    """
    _get_quiz(quiz_id)
    entry = QuizQuestion.query.filter_by(quiz_id=quiz_id, question_id=question_id).first()
    if not entry:
        raise QuizError("Question is not part of this quiz")

    try:
        db.session.delete(entry)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error in remove_question: {str(e)}")
        raise


def _question_payload(question: Question) -> dict:
    return {
        'question_text': question.question_text,
        'question_type': question.question_type,
        'marks': question.marks,
        'correct_explanation': question.correct_explanation,
        'options': [
            {'text': opt.option_text, 'is_correct': opt.is_correct}
            for opt in question.options
        ],
    }


def _serialize_question(question: Question, order: int) -> dict:
    return {
        'id': question.id,
        'order': order,
        'question_text': question.question_text,
        'question_type': question.question_type,
        'marks': question.marks,
        'correct_explanation': question.correct_explanation,
        'options': [
            {'id': opt.id, 'option_text': opt.option_text, 'is_correct': opt.is_correct}
            for opt in question.options
        ],
    }


def update_question(quiz_id: int, question_id: int, data: dict) -> Question:
    """
    Edit a question of a quiz's pool.

    Fields missing from ``data`` keep their stored values, and the merged
    question is validated again, so an edit can never break the
    correct-option rules. Options are replaced as a whole and only while
    nobody has answered the question yet.
    """
    _get_quiz(quiz_id)
    entry = QuizQuestion.query.filter_by(quiz_id=quiz_id, question_id=question_id).first()
    if not entry:
        raise QuizError("Question is not part of this quiz")
    question = entry.question

    data = data or {}
    merged = _question_payload(question)
    for snake, camel in _QUESTION_FIELDS:
        if snake in data:
            merged[snake] = data[snake]
        elif camel and camel in data:
            merged[snake] = data[camel]

    cleaned, errors = QuizValidator.validate_question(merged)
    if errors:
        raise ValidationError(errors)

    replace_options = 'options' in data
    if replace_options and UserAnswer.query.filter_by(question_id=question.id).first():
        raise QuizError("Options cannot be changed after the question has been answered")

    try:
        question.question_text = cleaned['question_text']
        question.question_type = cleaned['question_type']
        question.marks = cleaned['marks']
        question.correct_explanation = cleaned['correct_explanation']
        if replace_options:
            question.options.clear()
            db.session.flush()
            for index, option in enumerate(cleaned['options']):
                question.options.append(QuestionOption(
                    option_text=option['text'],
                    is_correct=option['is_correct'],
                    order_index=index,
                ))
        db.session.commit()
        current_app.logger.info(f"Question updated: id={question.id}, quiz_id={quiz_id}")
        return question
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error in update_question: {str(e)}")
        raise


def delete_quiz(quiz_id: int) -> None:
    """
    Delete a quiz with its pool entries, assignments and attempts.

    Questions that no other quiz or attempt still uses are deleted too.
    """
    quiz = _get_quiz(quiz_id)
    question_ids = [entry.question_id for entry in quiz.pool_entries.all()]

    try:
        db.session.delete(quiz)
        db.session.flush()

        for question_id in question_ids:
            in_use = (
                QuizQuestion.query.filter_by(question_id=question_id).first()
                or UserQuizQuestion.query.filter_by(question_id=question_id).first()
                or UserAnswer.query.filter_by(question_id=question_id).first()
            )
            if not in_use:
                db.session.delete(db.session.get(Question, question_id))

        db.session.commit()
        current_app.logger.info(f"Quiz deleted: id={quiz_id}")
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Error in delete_quiz: {str(e)}")
        raise


def list_quizzes(created_by: Optional[int] = None) -> list[dict]:
    """Quizzes newest first, optionally only those of one author."""
    query = Quiz.query
    if created_by is not None:
        query = query.filter_by(created_by=created_by)

    quizzes = []
    for quiz in query.order_by(Quiz.created_at.desc(), Quiz.id.desc()).all():
        quizzes.append({
            'id': quiz.id,
            'name': quiz.name,
            'description': quiz.description,
            'time_limit': quiz.time_limit,
            'cutoff': quiz.cutoff,
            'max_questions': quiz.max_questions,
            'negative_marking': quiz.negative_marking,
            'answer_release_time': quiz.answer_release_time.isoformat() if quiz.answer_release_time else None,
            'created_by': quiz.created_by,
            'question_count': quiz.pool_entries.count(),
            'assigned_count': quiz.assignments.count(),
        })
    return quizzes


def get_quiz_details(quiz_id: int) -> dict:
    """A quiz with its whole pool, correct options included."""
    quiz = _get_quiz(quiz_id)
    entries = quiz.pool_entries.all()
    return {
        'id': quiz.id,
        'name': quiz.name,
        'description': quiz.description,
        'time_limit': quiz.time_limit,
        'cutoff': quiz.cutoff,
        'max_questions': quiz.max_questions,
        'negative_marking': quiz.negative_marking,
        'answer_release_time': quiz.answer_release_time.isoformat() if quiz.answer_release_time else None,
        'pool_marks': sum(entry.question.marks for entry in entries),
        'questions': [_serialize_question(entry.question, entry.question_order) for entry in entries],
    }
