"""
Test cases for the attempt lifecycle: start, resume, submit and results.
"""
from datetime import timedelta

import pytest

from conftest import correct_ids, multi_payload, wrong_ids
from quizhub import db
from quizhub.quiz import attempts
from quizhub.quiz.assignments import assign_quiz
from quizhub.quiz.attempts import (
    assigned_quizzes,
    expire_overdue_attempts,
    get_attempt_questions,
    get_attempt_result,
    parse_answers,
    start_attempt,
    submit_attempt,
)
from quizhub.quiz.authoring import add_question
from quizhub.quiz.exceptions import (
    AssignmentNotFound,
    AttemptAlreadyCompleted,
    AttemptExpired,
    AttemptNotStarted,
    ResultNotAvailable,
)
from quizhub.quiz.models import Question, UserAnswer, UserQuiz, UserQuizQuestion
from quizhub.quiz.types import SubmittedAnswer


def _assigned(make_quiz, make_user, admin, **quiz_fields):
    quiz = make_quiz(**quiz_fields)
    user = make_user()
    assign_quiz(quiz.id, [user.id], assigned_by=admin.id)
    return quiz, user


def _all_correct(questions):
    return [
        {'question_id': q['id'], 'selected_option_ids': correct_ids(db.session.get(Question, q['id']))}
        for q in questions
    ]


class TestStartAttempt:
    """Test cases for starting and resuming an attempt."""

    def test_unassigned_quiz_rejected(self, make_quiz, make_user):
        quiz = make_quiz()
        user = make_user()
        with pytest.raises(AssignmentNotFound):
            start_attempt(user.id, quiz.id)

    def test_draws_max_questions(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=6, max_questions=4)
        response = start_attempt(user.id, quiz.id, now=now)

        assert response['resumed'] is False
        assert response['user_quiz']['status'] == UserQuiz.STATUS_IN_PROGRESS
        assert len(response['questions']) == 4
        assert [q['order'] for q in response['questions']] == [1, 2, 3, 4]
        pool_ids = {q.id for q in quiz.pool_questions()}
        assert {q['id'] for q in response['questions']} <= pool_ids

    def test_whole_pool_when_max_exceeds_pool(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=3, max_questions=10)
        response = start_attempt(user.id, quiz.id, now=now)
        assert len(response['questions']) == 3

    def test_questions_hide_correct_flags(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin)
        response = start_attempt(user.id, quiz.id, now=now)
        for question in response['questions']:
            for option in question['options']:
                assert 'is_correct' not in option

    def test_resume_returns_same_selection(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=8, max_questions=5)
        first = start_attempt(user.id, quiz.id, now=now)
        second = start_attempt(user.id, quiz.id, now=now + timedelta(minutes=3))

        assert second['resumed'] is True
        assert second['questions'] == first['questions']
        assert second['user_quiz']['start_time'] == first['user_quiz']['start_time']

    def test_selection_persisted_once(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=5, max_questions=3)
        start_attempt(user.id, quiz.id, now=now)
        start_attempt(user.id, quiz.id, now=now)

        user_quiz = UserQuiz.query.filter_by(user_id=user.id, quiz_id=quiz.id).one()
        assert UserQuizQuestion.query.filter_by(user_quiz_id=user_quiz.id).count() == 3

    def test_existing_selection_reused_on_first_start(self, make_quiz, make_user, admin, now):
        """Test that a selection written by a concurrent start is served instead of a new draw."""
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=4, max_questions=2)
        user_quiz = UserQuiz.query.filter_by(user_id=user.id, quiz_id=quiz.id).one()
        pool = quiz.pool_questions()
        db.session.add_all([
            UserQuizQuestion(user_quiz_id=user_quiz.id, question_id=pool[3].id, question_order=1),
            UserQuizQuestion(user_quiz_id=user_quiz.id, question_id=pool[0].id, question_order=2),
        ])
        db.session.commit()

        response = start_attempt(user.id, quiz.id, now=now)
        assert [q['id'] for q in response['questions']] == [pool[3].id, pool[0].id]

    def test_conflicting_insert_reads_winner(self, make_quiz, make_user, admin, now, monkeypatch):
        """Test the unique constraint path when another start inserted first."""
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=4, max_questions=2)
        user_quiz = UserQuiz.query.filter_by(user_id=user.id, quiz_id=quiz.id).one()
        pool = quiz.pool_questions()
        db.session.add_all([
            UserQuizQuestion(user_quiz_id=user_quiz.id, question_id=pool[2].id, question_order=1),
            UserQuizQuestion(user_quiz_id=user_quiz.id, question_id=pool[1].id, question_order=2),
        ])
        db.session.commit()

        real_load = attempts._load_selection
        calls = {'n': 0}

        def stale_first_read(user_quiz_id):
            calls['n'] += 1
            return [] if calls['n'] == 1 else real_load(user_quiz_id)

        monkeypatch.setattr(attempts, '_load_selection', stale_first_read)
        response = start_attempt(user.id, quiz.id, now=now)

        assert [q['id'] for q in response['questions']] == [pool[2].id, pool[1].id]
        assert UserQuizQuestion.query.filter_by(user_quiz_id=user_quiz.id).count() == 2

    def test_empty_pool_starts_with_no_questions(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=0)
        response = start_attempt(user.id, quiz.id, now=now)
        assert response['questions'] == []

    def test_start_after_completion_rejected(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin)
        start_attempt(user.id, quiz.id, now=now)
        submit_attempt(user.id, quiz.id, [], now=now)
        with pytest.raises(AttemptAlreadyCompleted):
            start_attempt(user.id, quiz.id, now=now)


class TestGetAttemptQuestions:
    """Test cases for re-serving the drawn questions."""

    def test_before_start(self, make_quiz, make_user, admin):
        quiz, user = _assigned(make_quiz, make_user, admin)
        with pytest.raises(AttemptNotStarted):
            get_attempt_questions(user.id, quiz.id)

    def test_matches_start_response(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=5, max_questions=3)
        response = start_attempt(user.id, quiz.id, now=now)
        assert get_attempt_questions(user.id, quiz.id) == response['questions']


class TestParseAnswers:
    """Test cases for normalising the untrusted answer payload."""

    def test_snake_and_camel_case(self):
        parsed = parse_answers([
            {'question_id': 1, 'selected_option_ids': [2, 3]},
            {'questionId': '4', 'selectedOptionIds': ['5']},
        ])
        assert parsed == [SubmittedAnswer.of(1, [2, 3]), SubmittedAnswer.of(4, [5])]

    def test_missing_question_id_dropped(self):
        assert parse_answers([{'selected_option_ids': [1]}, 'junk', None]) == []

    def test_scalar_selection(self):
        assert parse_answers([{'question_id': 1, 'selected_option_ids': 7}]) == [SubmittedAnswer.of(1, [7])]

    def test_garbage_option_ids_never_match(self):
        parsed = parse_answers([{'question_id': 1, 'selected_option_ids': ['abc', True, None]}])
        assert parsed == [SubmittedAnswer.of(1, ['abc'])]

    def test_none_payload(self):
        assert parse_answers(None) == []

    def test_malformed_numeric_strings_kept_as_text(self):
        """Test that strings int() would reject stay unmatched text instead of raising."""
        parsed = parse_answers([
            {'question_id': 1, 'selected_option_ids': ['--5', '\u00b2', ' 7 ']},
            {'question_id': '\u00b2', 'selected_option_ids': []},
        ])
        assert parsed == [
            SubmittedAnswer.of(1, ['--5', '\u00b2', 7]),
            SubmittedAnswer.of('\u00b2', []),
        ]

    def test_integral_floats_become_ints(self):
        parsed = parse_answers([{'question_id': 3.0, 'selected_option_ids': [2.0, 2.5]}])
        assert parsed == [SubmittedAnswer.of(3, [2, '2.5'])]


class TestSubmitAttempt:
    """Test cases for scoring and completing an attempt."""

    def test_all_correct(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=3, marks=2, cutoff=60)
        started = start_attempt(user.id, quiz.id, now=now)

        result = submit_attempt(user.id, quiz.id, _all_correct(started['questions']), now=now + timedelta(minutes=5))

        assert result['total_score'] == 6.0
        assert result['total_marks'] == 6
        assert result['percentage'] == 100.0
        assert result['passed'] is True

        user_quiz = UserQuiz.query.filter_by(user_id=user.id, quiz_id=quiz.id).one()
        assert user_quiz.status == UserQuiz.STATUS_COMPLETED
        assert float(user_quiz.score) == 6.0
        assert user_quiz.end_time == now + timedelta(minutes=5)
        assert UserAnswer.query.filter_by(user_quiz_id=user_quiz.id).count() == 3

    def test_negative_marking_persisted(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=1, marks=4, negative_marking=True)
        started = start_attempt(user.id, quiz.id, now=now)
        question = db.session.get(Question, started['questions'][0]['id'])

        result = submit_attempt(user.id, quiz.id, [
            {'question_id': question.id, 'selected_option_ids': wrong_ids(question)[:1]},
        ], now=now)

        assert result['total_score'] == -1.0
        assert result['percentage'] == -25.0
        assert result['passed'] is False
        stored = UserAnswer.query.one()
        assert stored.is_correct is False
        assert float(stored.marks_obtained) == -1.0

    def test_unanswered_questions_not_counted(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=3, marks=5)
        started = start_attempt(user.id, quiz.id, now=now)

        result = submit_attempt(user.id, quiz.id, _all_correct(started['questions'][:1]), now=now)

        assert result['total_score'] == 5.0
        assert result['total_marks'] == 5
        assert result['percentage'] == 100.0

    def test_questions_outside_selection_ignored(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=3, max_questions=1, marks=5)
        started = start_attempt(user.id, quiz.id, now=now)
        drawn = started['questions'][0]['id']
        others = [q for q in quiz.pool_questions() if q.id != drawn]

        payload = [
            {'question_id': other.id, 'selected_option_ids': correct_ids(other)}
            for other in others
        ]
        result = submit_attempt(user.id, quiz.id, payload, now=now)

        assert result['total_marks'] == 0
        assert result['total_score'] == 0.0
        assert UserAnswer.query.count() == 0

    def test_multiple_select_question(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=0, max_questions=1)
        question = add_question(quiz.id, multi_payload(marks=10, correct_indexes=(0, 2)))
        start_attempt(user.id, quiz.id, now=now)

        right = correct_ids(question)
        result = submit_attempt(user.id, quiz.id, [
            {'questionId': str(question.id), 'selectedOptionIds': [str(oid) for oid in reversed(right)]},
        ], now=now)

        assert result['total_score'] == 10.0
        assert result['percentage'] == 100.0

    @pytest.mark.parametrize('bad_id', ['--1', '\u00b2'])
    def test_malformed_option_id_graded_incorrect(self, make_quiz, make_user, admin, now, bad_id):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=1, marks=4, negative_marking=True)
        started = start_attempt(user.id, quiz.id, now=now)
        question_id = started['questions'][0]['id']

        result = submit_attempt(user.id, quiz.id, [
            {'question_id': question_id, 'selected_option_ids': [bad_id]},
        ], now=now)

        assert result['total_score'] == -1.0
        assert result['total_marks'] == 4
        stored = UserAnswer.query.one()
        assert stored.is_correct is False
        assert stored.get_selected_option_ids() == [bad_id]

    def test_float_ids_match_stored_options(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=1, marks=2)
        started = start_attempt(user.id, quiz.id, now=now)
        question = db.session.get(Question, started['questions'][0]['id'])

        result = submit_attempt(user.id, quiz.id, [
            {'question_id': float(question.id), 'selected_option_ids': [float(oid) for oid in correct_ids(question)]},
        ], now=now)

        assert result['total_score'] == 2.0

    def test_empty_pool_scores_zero(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=0)
        start_attempt(user.id, quiz.id, now=now)
        result = submit_attempt(user.id, quiz.id, [], now=now)

        assert result['total_marks'] == 0
        assert result['percentage'] == 0.0

    def test_second_submission_rejected(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin)
        started = start_attempt(user.id, quiz.id, now=now)
        submit_attempt(user.id, quiz.id, _all_correct(started['questions']), now=now)

        with pytest.raises(AttemptAlreadyCompleted):
            submit_attempt(user.id, quiz.id, [], now=now)

        user_quiz = UserQuiz.query.filter_by(user_id=user.id, quiz_id=quiz.id).one()
        assert float(user_quiz.percentage) == 100.0

    def test_submit_before_start(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin)
        with pytest.raises(AttemptNotStarted):
            submit_attempt(user.id, quiz.id, [], now=now)

    def test_submit_after_time_limit(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, time_limit=10)
        start_attempt(user.id, quiz.id, now=now)

        with pytest.raises(AttemptExpired):
            submit_attempt(user.id, quiz.id, [], now=now + timedelta(minutes=12))

        user_quiz = UserQuiz.query.filter_by(user_id=user.id, quiz_id=quiz.id).one()
        assert user_quiz.status == UserQuiz.STATUS_EXPIRED
        with pytest.raises(AttemptExpired):
            start_attempt(user.id, quiz.id, now=now + timedelta(minutes=13))

    def test_submit_within_grace_period(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, time_limit=10)
        start_attempt(user.id, quiz.id, now=now)

        result = submit_attempt(user.id, quiz.id, [], now=now + timedelta(minutes=10, seconds=30))
        assert result['user_quiz_id']


class TestAttemptResult:
    """Test cases for reading a stored result."""

    def test_not_completed(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin)
        start_attempt(user.id, quiz.id, now=now)
        with pytest.raises(ResultNotAvailable):
            get_attempt_result(user.id, quiz.id, now=now)

    def test_answers_hidden_before_release(self, make_quiz, make_user, admin, now):
        release = now + timedelta(days=1)
        quiz, user = _assigned(make_quiz, make_user, admin, answer_release_time=release.isoformat())
        started = start_attempt(user.id, quiz.id, now=now)
        submit_attempt(user.id, quiz.id, _all_correct(started['questions']), now=now)

        hidden = get_attempt_result(user.id, quiz.id, now=now + timedelta(hours=1))
        assert hidden['answers'] is None
        assert hidden['result']['percentage'] == 100.0
        assert hidden['result']['passed'] is True

        shown = get_attempt_result(user.id, quiz.id, now=release)
        assert len(shown['answers']) == len(started['questions'])
        assert all(answer['is_correct'] for answer in shown['answers'])

    def test_answers_shown_without_release_time(self, make_quiz, make_user, admin, now):
        quiz, user = _assigned(make_quiz, make_user, admin, pool_size=1)
        started = start_attempt(user.id, quiz.id, now=now)
        submit_attempt(user.id, quiz.id, _all_correct(started['questions']), now=now)

        result = get_attempt_result(user.id, quiz.id, now=now)
        answer = result['answers'][0]
        assert answer['selected_option_ids'] == answer['correct_option_ids']
        assert result['message'] is None


class TestExpireOverdueAttempts:
    """Test cases for the timeout sweep."""

    def test_expires_only_overdue_timed_attempts(self, make_quiz, make_user, admin, now):
        timed, timed_user = _assigned(make_quiz, make_user, admin, time_limit=5)
        untimed, untimed_user = _assigned(make_quiz, make_user, admin)
        start_attempt(timed_user.id, timed.id, now=now)
        start_attempt(untimed_user.id, untimed.id, now=now)

        assert expire_overdue_attempts(now=now + timedelta(minutes=2)) == 0
        assert expire_overdue_attempts(now=now + timedelta(hours=1)) == 1

        statuses = {uq.quiz_id: uq.status for uq in UserQuiz.query.all()}
        assert statuses[timed.id] == UserQuiz.STATUS_EXPIRED
        assert statuses[untimed.id] == UserQuiz.STATUS_IN_PROGRESS


class TestAssignedQuizzes:
    """Test cases for a learner's list of assigned quizzes."""

    def test_lists_assignments_with_status(self, make_quiz, make_user, admin, now):
        first, user = _assigned(make_quiz, make_user, admin, time_limit=20)
        second = make_quiz(name='Second Quiz')
        assign_quiz(second.id, [user.id], assigned_by=admin.id)
        start_attempt(user.id, first.id, now=now)

        listed = assigned_quizzes(user.id)

        assert [entry['id'] for entry in listed] == [second.id, first.id]
        statuses = {entry['id']: entry['status'] for entry in listed}
        assert statuses == {first.id: 'in_progress', second.id: 'assigned'}
        assert listed[1]['time_limit'] == 20
        assert listed[1]['start_time'] == now.isoformat()

    def test_no_assignments(self, make_user):
        assert assigned_quizzes(make_user().id) == []
