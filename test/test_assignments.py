"""
Test cases for assigning quizzes to users.
"""
import pytest

from quizhub.quiz.assignments import assign_quiz
from quizhub.quiz.exceptions import QuizNotFound, ValidationError
from quizhub.quiz.models import UserQuiz


class TestAssignQuiz:
    """Test cases for quiz assignment."""

    def test_assigns_users(self, make_quiz, make_user, admin):
        quiz = make_quiz()
        users = [make_user(), make_user()]

        result = assign_quiz(quiz.id, [u.id for u in users], assigned_by=admin.id)

        assert result['assigned'] == [u.id for u in users]
        assert result['skipped'] == []
        rows = UserQuiz.query.filter_by(quiz_id=quiz.id).all()
        assert {row.status for row in rows} == {UserQuiz.STATUS_ASSIGNED}
        assert all(row.assigned_by == admin.id for row in rows)

    def test_existing_assignment_skipped(self, make_quiz, make_user, admin):
        quiz = make_quiz()
        first, second = make_user(), make_user()
        assign_quiz(quiz.id, [first.id], assigned_by=admin.id)

        result = assign_quiz(quiz.id, [first.id, second.id], assigned_by=admin.id)

        assert result['assigned'] == [second.id]
        assert result['skipped'] == [first.id]
        assert UserQuiz.query.filter_by(quiz_id=quiz.id).count() == 2

    def test_duplicate_ids_in_request(self, make_quiz, make_user, admin):
        quiz = make_quiz()
        user = make_user()
        result = assign_quiz(quiz.id, [user.id, user.id], assigned_by=admin.id)
        assert result['assigned'] == [user.id]

    def test_unknown_quiz(self, make_user, admin):
        user = make_user()
        with pytest.raises(QuizNotFound):
            assign_quiz(999, [user.id], assigned_by=admin.id)

    def test_unknown_user(self, make_quiz, admin):
        quiz = make_quiz()
        with pytest.raises(ValidationError) as exc_info:
            assign_quiz(quiz.id, [12345], assigned_by=admin.id)
        assert exc_info.value.errors == ["Some users not found"]

    @pytest.mark.parametrize('user_ids', [[], None, ['1'], [True]])
    def test_invalid_user_ids(self, make_quiz, admin, user_ids):
        quiz = make_quiz()
        with pytest.raises(ValidationError):
            assign_quiz(quiz.id, user_ids, assigned_by=admin.id)

    def test_batch_limit(self, app, make_quiz, admin):
        app.config['MAX_ASSIGN_BATCH'] = 2
        quiz = make_quiz()
        with pytest.raises(ValidationError):
            assign_quiz(quiz.id, [1, 2, 3], assigned_by=admin.id)

    def test_non_admin_cannot_assign(self, make_quiz, make_user):
        quiz = make_quiz()
        learner, other = make_user(), make_user()
        with pytest.raises(ValidationError) as exc_info:
            assign_quiz(quiz.id, [other.id], assigned_by=learner.id)
        assert exc_info.value.errors == ["Only administrators can assign quizzes"]
