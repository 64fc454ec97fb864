"""create term result tables

Revision ID: 4c1d2e7a9b30
Revises:
Create Date: 2026-10-19 09:12:41.508233

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '4c1d2e7a9b30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def base_columns():
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
    ]


def base_indexes(table: str):
    op.create_index(f'ix_{table}_id', table, ['id'])
    op.create_index(f'ix_{table}_created_at', table, ['created_at'])
    op.create_index(f'ix_{table}_is_deleted', table, ['is_deleted'])


def upgrade() -> None:
    op.create_table(
        'subjects',
        *base_columns(),
        sa.Column('subject_code', sa.String(20), nullable=False),
        sa.Column('subject_name', sa.String(100), nullable=False),
    )
    base_indexes('subjects')
    op.create_index('ix_subjects_subject_code', 'subjects', ['subject_code'], unique=True)

    op.create_table(
        'teachers',
        *base_columns(),
        sa.Column('staff_number', sa.String(20), nullable=False),
        sa.Column('first_name', sa.String(50), nullable=False),
        sa.Column('last_name', sa.String(50), nullable=False),
        sa.Column('email', sa.String(100)),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    base_indexes('teachers')
    op.create_index('ix_teachers_staff_number', 'teachers', ['staff_number'], unique=True)
    op.create_index('ix_teachers_email', 'teachers', ['email'])

    op.create_table(
        'classes',
        *base_columns(),
        sa.Column('class_name', sa.String(50), nullable=False),
        sa.Column('grade_level', sa.String(20), nullable=False),
        sa.Column('academic_year', sa.String(20), nullable=False),
    )
    base_indexes('classes')
    op.create_index('ix_classes_class_name', 'classes', ['class_name'], unique=True)

    op.create_table(
        'class_mandatory_subjects',
        *base_columns(),
        sa.Column('class_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('classes.id'), nullable=False),
        sa.Column('subject_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('subjects.id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.UniqueConstraint('class_id', 'subject_id', name='uq_class_mandatory_subject'),
    )
    base_indexes('class_mandatory_subjects')
    op.create_index('ix_class_mandatory_subjects_class_id', 'class_mandatory_subjects', ['class_id'])

    op.create_table(
        'students',
        *base_columns(),
        sa.Column('admission_number', sa.String(20), nullable=False),
        sa.Column('first_name', sa.String(50), nullable=False),
        sa.Column('last_name', sa.String(50), nullable=False),
        sa.Column('current_class_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('classes.id'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
    )
    base_indexes('students')
    op.create_index('ix_students_admission_number', 'students', ['admission_number'], unique=True)
    op.create_index('ix_students_current_class_id', 'students', ['current_class_id'])

    op.create_table(
        'term_results',
        *base_columns(),
        sa.Column('student_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('class_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('classes.id'), nullable=False),
        sa.Column('recorded_by', postgresql.UUID(as_uuid=True), sa.ForeignKey('teachers.id'), nullable=False),
        sa.Column('academic_year', sa.String(20), nullable=False),
        sa.Column('term', sa.String(20), nullable=False),
        sa.UniqueConstraint('student_id', 'class_id', 'academic_year', 'term', name='uq_term_result_identity'),
    )
    base_indexes('term_results')
    op.create_index('ix_term_results_student_id', 'term_results', ['student_id'])
    op.create_index('ix_term_results_class_id', 'term_results', ['class_id'])

    op.create_table(
        'term_result_grades',
        *base_columns(),
        sa.Column(
            'term_result_id', postgresql.UUID(as_uuid=True),
            sa.ForeignKey('term_results.id', ondelete='CASCADE'), nullable=False
        ),
        sa.Column('subject_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('subjects.id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ca_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('exam_score', sa.Float(), nullable=False, server_default='0'),
        sa.UniqueConstraint('term_result_id', 'subject_id', name='uq_term_result_grade_subject'),
        sa.CheckConstraint('ca_score >= 0', name='ck_grade_ca_score_non_negative'),
        sa.CheckConstraint('exam_score >= 0', name='ck_grade_exam_score_non_negative'),
    )
    base_indexes('term_result_grades')
    op.create_index('ix_term_result_grades_term_result_id', 'term_result_grades', ['term_result_id'])
    op.create_index('ix_term_result_grades_subject_id', 'term_result_grades', ['subject_id'])


def downgrade() -> None:
    op.drop_table('term_result_grades')
    op.drop_table('term_results')
    op.drop_table('students')
    op.drop_table('class_mandatory_subjects')
    op.drop_table('classes')
    op.drop_table('teachers')
    op.drop_table('subjects')
