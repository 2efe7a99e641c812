"""create_exam_tables

Revision ID: 3f1c2a9b7d40
Revises:
Create Date: 2026-10-17 10:12:03.418250

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9b7d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('institutions',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('users',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100), nullable=True),
        sa.Column('role', sa.String(30), nullable=False, server_default='STUDENT'),
        sa.Column('institution_id', sa.String(36), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['institution_id'], ['institutions.id'], ondelete='CASCADE')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_institution_id', 'users', ['institution_id'])

    op.create_table('courses',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('institution_id', sa.String(36), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['institution_id'], ['institutions.id'], ondelete='CASCADE')
    )
    op.create_index('ix_courses_institution_id', 'courses', ['institution_id'])

    op.create_table('classes',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('course_id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE')
    )
    op.create_index('ix_classes_course_id', 'classes', ['course_id'])

    op.create_table('enrollments',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('class_id', sa.String(36), nullable=False),
        sa.Column('role', sa.String(30), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', 'class_id', name='uq_enrollment_user_class')
    )
    op.create_index('ix_enrollments_user_id', 'enrollments', ['user_id'])
    op.create_index('ix_enrollments_class_id', 'enrollments', ['class_id'])

    op.create_table('exams',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('course_id', sa.String(36), nullable=False),
        sa.Column('class_id', sa.String(36), nullable=True),
        sa.Column('class_ids', sa.JSON(), nullable=False),
        sa.Column('parent_exam_id', sa.String(36), nullable=True),
        sa.Column('author_id', sa.String(36), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('require_honor_commitment', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('allowed_materials', sa.Text(), nullable=True),
        sa.Column('anti_cheat_config', sa.JSON(), nullable=True),
        sa.Column('grading_config', sa.JSON(), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['course_id'], ['courses.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['class_id'], ['classes.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['parent_exam_id'], ['exams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['author_id'], ['users.id'], ondelete='SET NULL')
    )
    op.create_index('ix_exams_course_id', 'exams', ['course_id'])
    op.create_index('ix_exams_class_id', 'exams', ['class_id'])
    op.create_index('ix_exams_parent_exam_id', 'exams', ['parent_exam_id'])
    op.create_index('ix_exams_status', 'exams', ['status'])

    op.create_table('exam_sections',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('exam_id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(255), nullable=False, server_default=''),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('custom_label', sa.String(100), nullable=True),
        sa.Column('intro_content', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['exam_id'], ['exams.id'], ondelete='CASCADE')
    )
    op.create_index('ix_exam_sections_exam_id', 'exam_sections', ['exam_id'])

    op.create_table('questions',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('section_id', sa.String(36), nullable=False),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('answer_template', sa.Text(), nullable=True),
        sa.Column('answer_template_locked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('student_tools', sa.JSON(), nullable=True),
        sa.Column('shuffle_options', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('type', sa.String(20), nullable=False, server_default='TEXT'),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('custom_label', sa.String(100), nullable=True),
        sa.Column('require_all_correct', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('max_points', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['section_id'], ['exam_sections.id'], ondelete='CASCADE')
    )
    op.create_index('ix_questions_section_id', 'questions', ['section_id'])

    op.create_table('question_segments',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('question_id', sa.String(36), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('instruction', sa.Text(), nullable=False, server_default=''),
        sa.Column('max_points', sa.Float(), nullable=True),
        sa.Column('is_correct', sa.Boolean(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='CASCADE')
    )
    op.create_index('ix_question_segments_question_id', 'question_segments', ['question_id'])

    op.create_table('rubrics',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('segment_id', sa.String(36), nullable=False),
        sa.Column('criteria', sa.Text(), nullable=True),
        sa.Column('levels', sa.JSON(), nullable=False),
        sa.Column('examples', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['segment_id'], ['question_segments.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('segment_id')
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('rubrics')
    op.drop_index('ix_question_segments_question_id', table_name='question_segments')
    op.drop_table('question_segments')
    op.drop_index('ix_questions_section_id', table_name='questions')
    op.drop_table('questions')
    op.drop_index('ix_exam_sections_exam_id', table_name='exam_sections')
    op.drop_table('exam_sections')
    op.drop_index('ix_exams_status', table_name='exams')
    op.drop_index('ix_exams_parent_exam_id', table_name='exams')
    op.drop_index('ix_exams_class_id', table_name='exams')
    op.drop_index('ix_exams_course_id', table_name='exams')
    op.drop_table('exams')
    op.drop_index('ix_enrollments_class_id', table_name='enrollments')
    op.drop_index('ix_enrollments_user_id', table_name='enrollments')
    op.drop_table('enrollments')
    op.drop_index('ix_classes_course_id', table_name='classes')
    op.drop_table('classes')
    op.drop_index('ix_courses_institution_id', table_name='courses')
    op.drop_table('courses')
    op.drop_index('ix_users_institution_id', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    op.drop_table('institutions')
