"""Add quiz tables

Revision ID: 4e7a2c91d0b3
Revises:
Create Date: 2026-10-17 09:12:05.118342

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision = '4e7a2c91d0b3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    inspector = inspect(op.get_bind())
    tables = inspector.get_table_names()

    if 'users' not in tables:
        op.create_table('users',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('phone', sa.String(length=20), nullable=True),
            sa.Column('role', sa.String(length=20), nullable=False, server_default='user'),
            sa.Column('created_at', sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_users_email', 'users', ['email'], unique=True)

    if 'quizzes' not in tables:
        op.create_table('quizzes',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('time_limit', sa.Integer(), nullable=True),
            sa.Column('cutoff', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('max_questions', sa.Integer(), nullable=False, server_default='10'),
            sa.Column('negative_marking', sa.Boolean(), nullable=False, server_default='0'),
            sa.Column('answer_release_time', sa.DateTime(), nullable=True),
            sa.Column('created_by', sa.Integer(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.Column('updated_at', sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(['created_by'], ['users.id'], ondelete='SET NULL'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_quizzes_created_by', 'quizzes', ['created_by'], unique=False)
        op.create_index('ix_quizzes_created_at', 'quizzes', ['created_at'], unique=False)

    if 'questions' not in tables:
        op.create_table('questions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('question_text', sa.Text(), nullable=False),
            sa.Column('question_type', sa.String(length=50), nullable=False, server_default='mcq'),
            sa.Column('marks', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('correct_explanation', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_questions_question_type', 'questions', ['question_type'], unique=False)

    if 'question_options' not in tables:
        op.create_table('question_options',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('question_id', sa.Integer(), nullable=False),
            sa.Column('option_text', sa.Text(), nullable=False),
            sa.Column('is_correct', sa.Boolean(), nullable=False, server_default='0'),
            sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
            sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_question_options_question_id', 'question_options', ['question_id'], unique=False)

    if 'quiz_questions' not in tables:
        op.create_table('quiz_questions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('quiz_id', sa.Integer(), nullable=False),
            sa.Column('question_id', sa.Integer(), nullable=False),
            sa.Column('question_order', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('quiz_id', 'question_id', name='uq_quiz_question')
        )
        op.create_index('ix_quiz_questions_quiz_id', 'quiz_questions', ['quiz_id'], unique=False)
        op.create_index('ix_quiz_questions_question_id', 'quiz_questions', ['question_id'], unique=False)

    if 'user_quizzes' not in tables:
        op.create_table('user_quizzes',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('quiz_id', sa.Integer(), nullable=False),
            sa.Column('assigned_by', sa.Integer(), nullable=True),
            sa.Column('assigned_at', sa.DateTime(), nullable=False),
            sa.Column('start_time', sa.DateTime(), nullable=True),
            sa.Column('end_time', sa.DateTime(), nullable=True),
            sa.Column('score', sa.Numeric(precision=8, scale=2), nullable=True),
            sa.Column('total_marks', sa.Integer(), nullable=True),
            sa.Column('percentage', sa.Numeric(precision=6, scale=2), nullable=True),
            sa.Column('status', sa.String(length=20), nullable=False, server_default='assigned'),
            sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['quiz_id'], ['quizzes.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['assigned_by'], ['users.id'], ondelete='SET NULL'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_id', 'quiz_id', name='uq_user_quiz')
        )
        op.create_index('ix_user_quizzes_user_id', 'user_quizzes', ['user_id'], unique=False)
        op.create_index('ix_user_quizzes_quiz_id', 'user_quizzes', ['quiz_id'], unique=False)
        op.create_index('ix_user_quizzes_status', 'user_quizzes', ['status'], unique=False)
        op.create_index('ix_user_quizzes_quiz_status', 'user_quizzes', ['quiz_id', 'status'], unique=False)

    if 'user_quiz_questions' not in tables:
        op.create_table('user_quiz_questions',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_quiz_id', sa.Integer(), nullable=False),
            sa.Column('question_id', sa.Integer(), nullable=False),
            sa.Column('question_order', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['user_quiz_id'], ['user_quizzes.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_quiz_id', 'question_id', name='uq_user_quiz_question'),
            sa.UniqueConstraint('user_quiz_id', 'question_order', name='uq_user_quiz_question_order')
        )
        op.create_index('ix_user_quiz_questions_user_quiz_id', 'user_quiz_questions', ['user_quiz_id'], unique=False)

    if 'user_answers' not in tables:
        op.create_table('user_answers',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('user_quiz_id', sa.Integer(), nullable=False),
            sa.Column('question_id', sa.Integer(), nullable=False),
            sa.Column('selected_option_ids', sa.Text(), nullable=False),
            sa.Column('is_correct', sa.Boolean(), nullable=True),
            sa.Column('marks_obtained', sa.Numeric(precision=6, scale=2), nullable=False, server_default='0'),
            sa.Column('answered_at', sa.DateTime(), nullable=False),
            sa.ForeignKeyConstraint(['user_quiz_id'], ['user_quizzes.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('user_quiz_id', 'question_id', name='uq_user_answer')
        )
        op.create_index('ix_user_answers_user_quiz_id', 'user_answers', ['user_quiz_id'], unique=False)
        op.create_index('ix_user_answers_question_id', 'user_answers', ['question_id'], unique=False)


def downgrade():
    op.drop_index('ix_user_answers_question_id', table_name='user_answers')
    op.drop_index('ix_user_answers_user_quiz_id', table_name='user_answers')
    op.drop_table('user_answers')

    op.drop_index('ix_user_quiz_questions_user_quiz_id', table_name='user_quiz_questions')
    op.drop_table('user_quiz_questions')

    op.drop_index('ix_user_quizzes_quiz_status', table_name='user_quizzes')
    op.drop_index('ix_user_quizzes_status', table_name='user_quizzes')
    op.drop_index('ix_user_quizzes_quiz_id', table_name='user_quizzes')
    op.drop_index('ix_user_quizzes_user_id', table_name='user_quizzes')
    op.drop_table('user_quizzes')

    op.drop_index('ix_quiz_questions_question_id', table_name='quiz_questions')
    op.drop_index('ix_quiz_questions_quiz_id', table_name='quiz_questions')
    op.drop_table('quiz_questions')

    op.drop_index('ix_question_options_question_id', table_name='question_options')
    op.drop_table('question_options')

    op.drop_index('ix_questions_question_type', table_name='questions')
    op.drop_table('questions')

    op.drop_index('ix_quizzes_created_at', table_name='quizzes')
    op.drop_index('ix_quizzes_created_by', table_name='quizzes')
    op.drop_table('quizzes')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
