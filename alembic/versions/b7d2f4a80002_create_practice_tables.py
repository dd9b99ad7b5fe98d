"""create practice tables

Revision ID: b7d2f4a80002
Revises: a1c3e5f70001
Create Date: 2026-10-18 10:30:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'b7d2f4a80002'
down_revision = 'a1c3e5f70001'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'user_question_attempts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('question_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('questions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('chapter_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('selected_option', sa.Integer(), nullable=True),
        sa.Column('is_correct', sa.Boolean(), nullable=True),
        sa.Column('is_bookmarked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_flagged', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('attempt_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'question_id', name='uq_attempts_user_question'),
    )

    op.create_table(
        'user_streaks',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('questions_attempted', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('correct_answers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('incorrect_answers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('target_achieved', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'date', name='uq_user_streaks_user_date'),
    )

    op.create_table(
        'user_targets',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('daily_questions_target', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('goal', sa.String(255), nullable=True),
    )


def downgrade() -> None:
    op.drop_table('user_targets')
    op.drop_table('user_streaks')
    op.drop_table('user_question_attempts')
