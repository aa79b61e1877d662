"""
Pytest configuration and fixtures for testing.
Each test gets a fresh application bound to an in-memory SQLite database.
"""
import os
from datetime import datetime

import pytest

# Set test environment variables BEFORE importing the app package
os.environ['FLASK_ENV'] = 'testing'
os.environ['SECRET_KEY'] = 'sfndsfojoriwew09rjfjndsknfkj'
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['AUTO_CREATE_TABLES'] = 'true'
os.environ['ATTEMPT_GRACE_SECONDS'] = '60'

from quizhub import create_app, db
from quizhub.auth.models import User
from quizhub.quiz.authoring import add_question, create_quiz
from quizhub.quiz.types import OptionData, QuestionData


@pytest.fixture
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def admin(app):
    """Create an admin user."""
    user = User(email='admin@test.com', name='Admin User', role='admin')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def make_user(app):
    """Factory for learner accounts."""
    counter = {'n': 0}

    def _make_user(name=None):
        counter['n'] += 1
        n = counter['n']
        user = User(email=f'user{n}@test.com', name=name or f'User {n}', role='user')
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


def mcq_payload(text='What is 2 + 2?', marks=1, correct_index=0, option_count=4):
    return {
        'question_text': text,
        'question_type': 'mcq',
        'marks': marks,
        'options': [
            {'text': f'Option {i + 1}', 'is_correct': i == correct_index}
            for i in range(option_count)
        ],
    }


def multi_payload(text='Pick the primes', marks=2, correct_indexes=(0, 1), option_count=4):
    return {
        'question_text': text,
        'question_type': 'multiple_select',
        'marks': marks,
        'options': [
            {'text': f'Choice {i + 1}', 'is_correct': i in correct_indexes}
            for i in range(option_count)
        ],
    }


@pytest.fixture
def make_quiz(app, admin):
    """
    Factory for a quiz with a pool of mcq questions.

    Returns the Quiz; its questions are reachable through ``quiz.pool_questions()``.
    """
    def _make_quiz(pool_size=3, marks=1, **quiz_fields):
        data = {'name': 'Sample Quiz', 'max_questions': max(pool_size, 1)}
        data.update(quiz_fields)
        quiz = create_quiz(data, created_by=admin.id)
        for index in range(pool_size):
            add_question(quiz.id, mcq_payload(text=f'Question number {index + 1}', marks=marks))
        return quiz

    return _make_quiz


@pytest.fixture
def now():
    return datetime(2026, 3, 1, 10, 0, 0)


def correct_ids(question):
    return [opt.id for opt in question.options if opt.is_correct]


def wrong_ids(question):
    return [opt.id for opt in question.options if not opt.is_correct]


def make_question(question_id, question_type='mcq', marks=1, correct=(1,), option_ids=(1, 2, 3, 4)):
    """Build an immutable question value for the pure scoring tests."""
    return QuestionData(
        id=question_id,
        question_type=question_type,
        marks=marks,
        options=tuple(
            OptionData(id=oid, text=f'Option {oid}', is_correct=oid in correct)
            for oid in option_ids
        ),
    )
