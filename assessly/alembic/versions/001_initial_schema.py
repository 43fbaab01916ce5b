"""Initial database schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _document_columns():
    return [
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('data', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade():
    # Question bank
    op.create_table(
        'questions',
        *_document_columns(),
        sa.Column('kind', sa.String(20), nullable=False),
        sa.Column('difficulty', sa.String(20), nullable=False),
        sa.Column('topic', sa.String(200), nullable=False),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_questions')
    )
    for column in ('created_at', 'kind', 'difficulty', 'topic', 'created_by'):
        op.create_index(f'ix_questions_{column}', 'questions', [column])

    # Test definitions
    op.create_table(
        'tests',
        *_document_columns(),
        sa.Column('created_by', sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_tests')
    )
    op.create_index('ix_tests_created_at', 'tests', ['created_at'])
    op.create_index('ix_tests_created_by', 'tests', ['created_by'])

    # Eligibility groups and access roles
    for table in ('eligibility_groups', 'access_roles'):
        op.create_table(
            table,
            *_document_columns(),
            sa.Column('name', sa.String(200), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False),
            sa.PrimaryKeyConstraint('id', name=f'pk_{table}'),
            sa.UniqueConstraint('name', name=f'uq_{table}_name')
        )
        op.create_index(f'ix_{table}_created_at', table, ['created_at'])

    # Assignments
    op.create_table(
        'assignments',
        *_document_columns(),
        sa.Column('test_id', sa.String(64), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_assignments')
    )
    for column in ('created_at', 'test_id', 'is_active'):
        op.create_index(f'ix_assignments_{column}', 'assignments', [column])

    # Attempts
    op.create_table(
        'test_attempts',
        *_document_columns(),
        sa.Column('test_id', sa.String(64), nullable=False),
        sa.Column('assignment_id', sa.String(64), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_test_attempts')
    )
    op.create_index('ix_test_attempts_created_at', 'test_attempts', ['created_at'])
    op.create_index('ix_test_attempts_assignment_id', 'test_attempts', ['assignment_id'])
    op.create_index('ix_test_attempts_test_user', 'test_attempts', ['test_id', 'user_id'])
    op.create_index('ix_test_attempts_user_status', 'test_attempts', ['user_id', 'status'])
    op.create_index(
        'uq_test_attempts_triple',
        'test_attempts',
        ['test_id', 'assignment_id', 'user_id'],
        unique=True
    )


def downgrade():
    op.drop_table('test_attempts')
    op.drop_table('assignments')
    op.drop_table('access_roles')
    op.drop_table('eligibility_groups')
    op.drop_table('tests')
    op.drop_table('questions')
