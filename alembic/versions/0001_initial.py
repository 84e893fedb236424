"""Initial school schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

Compatible with both SQLite and PostgreSQL:
- CURRENT_TIMESTAMP instead of now()
- ENUMs stored as VARCHAR (native_enum=False in models)
"""
from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _base_columns() -> List[sa.Column]:
    """id + audit columns shared by every table (BaseModel)."""
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    ]


def upgrade() -> None:
    """Create all tables."""

    # Accounts
    op.create_table('users',
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=10), server_default='STUDENT', nullable=False),
        *_base_columns(),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    # Academic structure
    op.create_table('academic_years',
        sa.Column('year', sa.String(length=20), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('is_current', sa.Boolean(), server_default='0', nullable=False),
        *_base_columns(),
        sa.UniqueConstraint('year'),
    )
    op.create_table('class_levels',
        sa.Column('name', sa.String(length=100), nullable=False),
        *_base_columns(),
        sa.UniqueConstraint('name'),
    )
    op.create_table('subjects',
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('subject_code', sa.String(length=50), nullable=False),
        *_base_columns(),
        sa.UniqueConstraint('subject_code'),
    )
    op.create_table('sections',
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('class_level_id', sa.Integer(), nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(['class_level_id'], ['class_levels.id'], name='fk_section_class_level_id'),
        sa.UniqueConstraint('class_level_id', 'name', name='uq_section_class_level_name'),
    )
    op.create_index(op.f('ix_sections_class_level_id'), 'sections', ['class_level_id'], unique=False)

    # People
    op.create_table('guardians',
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('relation_to_student', sa.String(length=50), nullable=False),
        sa.Column('contact_number', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('occupation', sa.String(length=255), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_guardian_user_id', ondelete='SET NULL'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index(op.f('ix_guardians_email'), 'guardians', ['email'], unique=False)

    op.create_table('students',
        sa.Column('student_id', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=False),
        sa.Column('gender', sa.String(length=20), nullable=False),
        sa.Column('blood_group', sa.String(length=10), nullable=True),
        sa.Column('religion', sa.String(length=50), nullable=True),
        sa.Column('nationality', sa.String(length=50), nullable=True),
        sa.Column('admission_date', sa.Date(), nullable=False),
        sa.Column('present_address', sa.Text(), nullable=True),
        sa.Column('permanent_address', sa.Text(), nullable=True),
        sa.Column('guardian_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(['guardian_id'], ['guardians.id'], name='fk_student_guardian_id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_student_user_id', ondelete='SET NULL'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index(op.f('ix_students_student_id'), 'students', ['student_id'], unique=True)
    op.create_index(op.f('ix_students_name'), 'students', ['name'], unique=False)
    op.create_index(op.f('ix_students_email'), 'students', ['email'], unique=False)
    op.create_index(op.f('ix_students_guardian_id'), 'students', ['guardian_id'], unique=False)

    op.create_table('staff',
        sa.Column('staff_id', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('designation', sa.String(length=100), nullable=False),
        sa.Column('department', sa.String(length=100), nullable=True),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('gender', sa.String(length=20), nullable=True),
        sa.Column('contact_number', sa.String(length=50), nullable=True),
        sa.Column('joining_date', sa.Date(), nullable=False),
        sa.Column('qualification', sa.String(length=255), nullable=True),
        sa.Column('present_address', sa.Text(), nullable=True),
        sa.Column('permanent_address', sa.Text(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_staff_user_id', ondelete='CASCADE'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('user_id'),
    )
    op.create_index(op.f('ix_staff_staff_id'), 'staff', ['staff_id'], unique=True)
    op.create_index(op.f('ix_staff_name'), 'staff', ['name'], unique=False)

    op.create_table('enrollments',
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('class_level_id', sa.Integer(), nullable=False),
        sa.Column('section_id', sa.Integer(), nullable=False),
        sa.Column('academic_year_id', sa.Integer(), nullable=False),
        sa.Column('roll_number', sa.Integer(), nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], name='fk_enrollment_student_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['class_level_id'], ['class_levels.id'], name='fk_enrollment_class_level_id'),
        sa.ForeignKeyConstraint(['section_id'], ['sections.id'], name='fk_enrollment_section_id'),
        sa.ForeignKeyConstraint(['academic_year_id'], ['academic_years.id'], name='fk_enrollment_academic_year_id'),
        sa.UniqueConstraint('student_id', 'academic_year_id', name='uq_enrollment_student_year'),
        sa.UniqueConstraint('section_id', 'academic_year_id', 'roll_number', name='uq_enrollment_section_year_roll'),
    )
    op.create_index(op.f('ix_enrollments_student_id'), 'enrollments', ['student_id'], unique=False)
    op.create_index(op.f('ix_enrollments_academic_year_id'), 'enrollments', ['academic_year_id'], unique=False)
    op.create_index('idx_enrollment_class_section', 'enrollments', ['class_level_id', 'section_id'], unique=False)

    op.create_table('teacher_class_assignments',
        sa.Column('teacher_id', sa.Integer(), nullable=False),
        sa.Column('class_level_id', sa.Integer(), nullable=False),
        sa.Column('section_id', sa.Integer(), nullable=False),
        sa.Column('subject_id', sa.Integer(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(['teacher_id'], ['staff.id'], name='fk_tca_teacher_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['class_level_id'], ['class_levels.id'], name='fk_tca_class_level_id'),
        sa.ForeignKeyConstraint(['section_id'], ['sections.id'], name='fk_tca_section_id'),
        sa.ForeignKeyConstraint(['subject_id'], ['subjects.id'], name='fk_tca_subject_id'),
        sa.UniqueConstraint('teacher_id', 'class_level_id', 'section_id', 'subject_id', name='uq_teacher_class_assignment'),
    )
    op.create_index(op.f('ix_teacher_class_assignments_teacher_id'), 'teacher_class_assignments', ['teacher_id'], unique=False)

    # Staff HR
    op.create_table('staff_attendances',
        sa.Column('staff_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=8), nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(['staff_id'], ['staff.id'], name='fk_staff_attendance_staff_id', ondelete='CASCADE'),
        sa.UniqueConstraint('staff_id', 'date', name='uq_staff_attendance_staff_date'),
    )
    op.create_index(op.f('ix_staff_attendances_staff_id'), 'staff_attendances', ['staff_id'], unique=False)

    op.create_table('leave_requests',
        sa.Column('staff_id', sa.Integer(), nullable=False),
        sa.Column('leave_type', sa.String(length=50), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=8), server_default='PENDING', nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(['staff_id'], ['staff.id'], name='fk_leave_request_staff_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id'], name='fk_leave_request_approved_by', ondelete='SET NULL'),
    )
    op.create_index(op.f('ix_leave_requests_staff_id'), 'leave_requests', ['staff_id'], unique=False)
    op.create_index(op.f('ix_leave_requests_status'), 'leave_requests', ['status'], unique=False)

    # Student attendance
    op.create_table('student_attendances',
        sa.Column('enrollment_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=8), nullable=False),
        sa.Column('marked_by', sa.Integer(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(['enrollment_id'], ['enrollments.id'], name='fk_student_attendance_enrollment_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['marked_by'], ['staff.id'], name='fk_student_attendance_marked_by', ondelete='SET NULL'),
        sa.UniqueConstraint('enrollment_id', 'date', name='uq_student_attendance_enrollment_date'),
    )
    op.create_index(op.f('ix_student_attendances_enrollment_id'), 'student_attendances', ['enrollment_id'], unique=False)
    op.create_index(op.f('ix_student_attendances_date'), 'student_attendances', ['date'], unique=False)

    # Exams and grading
    op.create_table('grading_systems',
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('is_default', sa.Boolean(), server_default='0', nullable=False),
        *_base_columns(),
        sa.UniqueConstraint('name'),
    )
    op.create_table('grades',
        sa.Column('grading_system_id', sa.Integer(), nullable=False),
        sa.Column('grade_name', sa.String(length=10), nullable=False),
        sa.Column('min_percentage', sa.Float(), nullable=False),
        sa.Column('max_percentage', sa.Float(), nullable=False),
        sa.Column('points', sa.Float(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(['grading_system_id'], ['grading_systems.id'], name='fk_grade_grading_system_id', ondelete='CASCADE'),
    )
    op.create_index(op.f('ix_grades_grading_system_id'), 'grades', ['grading_system_id'], unique=False)

    op.create_table('exams',
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('academic_year_id', sa.Integer(), nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(['academic_year_id'], ['academic_years.id'], name='fk_exam_academic_year_id'),
    )
    op.create_index(op.f('ix_exams_academic_year_id'), 'exams', ['academic_year_id'], unique=False)

    op.create_table('exam_schedules',
        sa.Column('exam_id', sa.Integer(), nullable=False),
        sa.Column('class_level_id', sa.Integer(), nullable=False),
        sa.Column('subject_id', sa.Integer(), nullable=False),
        sa.Column('exam_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(length=10), nullable=True),
        sa.Column('end_time', sa.String(length=10), nullable=True),
        sa.Column('full_marks', sa.Numeric(precision=6, scale=2), nullable=False),
        sa.Column('pass_marks', sa.Numeric(precision=6, scale=2), nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(['exam_id'], ['exams.id'], name='fk_exam_schedule_exam_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['class_level_id'], ['class_levels.id'], name='fk_exam_schedule_class_level_id'),
        sa.ForeignKeyConstraint(['subject_id'], ['subjects.id'], name='fk_exam_schedule_subject_id'),
    )
    op.create_index(op.f('ix_exam_schedules_exam_id'), 'exam_schedules', ['exam_id'], unique=False)
    op.create_index('idx_exam_schedule_class_date', 'exam_schedules', ['class_level_id', 'exam_date'], unique=False)

    op.create_table('marks',
        sa.Column('enrollment_id', sa.Integer(), nullable=False),
        sa.Column('exam_schedule_id', sa.Integer(), nullable=False),
        sa.Column('marks_obtained', sa.Numeric(precision=6, scale=2), nullable=False),
        sa.Column('percentage', sa.Float(), nullable=False),
        sa.Column('grade_id', sa.Integer(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(['enrollment_id'], ['enrollments.id'], name='fk_marks_enrollment_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['exam_schedule_id'], ['exam_schedules.id'], name='fk_marks_exam_schedule_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['grade_id'], ['grades.id'], name='fk_marks_grade_id', ondelete='SET NULL'),
        sa.UniqueConstraint('enrollment_id', 'exam_schedule_id', name='uq_marks_enrollment_schedule'),
    )
    op.create_index(op.f('ix_marks_enrollment_id'), 'marks', ['enrollment_id'], unique=False)
    op.create_index(op.f('ix_marks_exam_schedule_id'), 'marks', ['exam_schedule_id'], unique=False)

    # Finance
    op.create_table('fee_heads',
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_base_columns(),
        sa.UniqueConstraint('name'),
    )
    op.create_table('invoices',
        sa.Column('invoice_number', sa.String(length=50), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('status', sa.String(length=14), server_default='PENDING', nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], name='fk_invoice_student_id', ondelete='CASCADE'),
    )
    op.create_index(op.f('ix_invoices_invoice_number'), 'invoices', ['invoice_number'], unique=True)
    op.create_index(op.f('ix_invoices_status'), 'invoices', ['status'], unique=False)
    op.create_index('idx_invoice_student_status', 'invoices', ['student_id', 'status'], unique=False)

    op.create_table('invoice_items',
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('fee_head_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], name='fk_invoice_item_invoice_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['fee_head_id'], ['fee_heads.id'], name='fk_invoice_item_fee_head_id'),
    )
    op.create_index(op.f('ix_invoice_items_invoice_id'), 'invoice_items', ['invoice_id'], unique=False)
    op.create_index(op.f('ix_invoice_items_fee_head_id'), 'invoice_items', ['fee_head_id'], unique=False)

    op.create_table('payments',
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('payment_date', sa.DateTime(), nullable=False),
        sa.Column('amount_paid', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('payment_method', sa.String(length=14), nullable=False),
        sa.Column('transaction_id', sa.String(length=100), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], name='fk_payment_invoice_id', ondelete='CASCADE'),
        sa.UniqueConstraint('transaction_id'),
    )
    op.create_index(op.f('ix_payments_invoice_id'), 'payments', ['invoice_id'], unique=False)
    op.create_index(op.f('ix_payments_payment_date'), 'payments', ['payment_date'], unique=False)

    op.create_table('expenses',
        sa.Column('expense_head', sa.String(length=100), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('expense_date', sa.DateTime(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_base_columns(),
    )
    op.create_index(op.f('ix_expenses_expense_head'), 'expenses', ['expense_head'], unique=False)
    op.create_index(op.f('ix_expenses_expense_date'), 'expenses', ['expense_date'], unique=False)

    # Library
    op.create_table('book_categories',
        sa.Column('name', sa.String(length=100), nullable=False),
        *_base_columns(),
        sa.UniqueConstraint('name'),
    )
    op.create_table('books',
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('author', sa.String(length=255), nullable=False),
        sa.Column('isbn', sa.String(length=20), nullable=True),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('total_copies', sa.Integer(), nullable=False),
        sa.Column('available_copies', sa.Integer(), nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(['category_id'], ['book_categories.id'], name='fk_book_category_id', ondelete='SET NULL'),
        sa.UniqueConstraint('isbn'),
    )
    op.create_index(op.f('ix_books_title'), 'books', ['title'], unique=False)
    op.create_index(op.f('ix_books_category_id'), 'books', ['category_id'], unique=False)

    op.create_table('book_issues',
        sa.Column('book_id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('issue_date', sa.DateTime(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=8), server_default='ISSUED', nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], name='fk_book_issue_book_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], name='fk_book_issue_student_id', ondelete='CASCADE'),
    )
    op.create_index(op.f('ix_book_issues_book_id'), 'book_issues', ['book_id'], unique=False)
    op.create_index(op.f('ix_book_issues_student_id'), 'book_issues', ['student_id'], unique=False)
    op.create_index(op.f('ix_book_issues_status'), 'book_issues', ['status'], unique=False)

    op.create_table('book_returns',
        sa.Column('book_issue_id', sa.Integer(), nullable=False),
        sa.Column('book_id', sa.Integer(), nullable=False),
        sa.Column('return_date', sa.DateTime(), nullable=False),
        sa.Column('condition', sa.String(length=50), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(['book_issue_id'], ['book_issues.id'], name='fk_book_return_issue_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['book_id'], ['books.id'], name='fk_book_return_book_id', ondelete='CASCADE'),
        sa.UniqueConstraint('book_issue_id'),
    )

    op.create_table('library_fines',
        sa.Column('book_issue_id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('status', sa.String(length=7), server_default='PENDING', nullable=False),
        *_base_columns(),
        sa.ForeignKeyConstraint(['book_issue_id'], ['book_issues.id'], name='fk_library_fine_issue_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], name='fk_library_fine_student_id', ondelete='CASCADE'),
    )
    op.create_index(op.f('ix_library_fines_book_issue_id'), 'library_fines', ['book_issue_id'], unique=False)

    # Homework
    op.create_table('assignments',
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('teacher_id', sa.Integer(), nullable=False),
        sa.Column('subject_id', sa.Integer(), nullable=False),
        sa.Column('class_level_id', sa.Integer(), nullable=False),
        sa.Column('section_id', sa.Integer(), nullable=False),
        sa.Column('due_date', sa.DateTime(), nullable=False),
        sa.Column('max_marks', sa.Numeric(precision=6, scale=2), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(['teacher_id'], ['staff.id'], name='fk_assignment_teacher_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['subject_id'], ['subjects.id'], name='fk_assignment_subject_id'),
        sa.ForeignKeyConstraint(['class_level_id'], ['class_levels.id'], name='fk_assignment_class_level_id'),
        sa.ForeignKeyConstraint(['section_id'], ['sections.id'], name='fk_assignment_section_id'),
    )
    op.create_index(op.f('ix_assignments_teacher_id'), 'assignments', ['teacher_id'], unique=False)
    op.create_index('idx_assignment_class_section', 'assignments', ['class_level_id', 'section_id'], unique=False)

    op.create_table('assignment_submissions',
        sa.Column('assignment_id', sa.Integer(), nullable=False),
        sa.Column('enrollment_id', sa.Integer(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=9), server_default='SUBMITTED', nullable=False),
        sa.Column('marks_obtained', sa.Numeric(precision=6, scale=2), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(['assignment_id'], ['assignments.id'], name='fk_submission_assignment_id', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['enrollment_id'], ['enrollments.id'], name='fk_submission_enrollment_id', ondelete='CASCADE'),
        sa.UniqueConstraint('assignment_id', 'enrollment_id', name='uq_submission_assignment_enrollment'),
    )
    op.create_index(op.f('ix_assignment_submissions_assignment_id'), 'assignment_submissions', ['assignment_id'], unique=False)
    op.create_index(op.f('ix_assignment_submissions_enrollment_id'), 'assignment_submissions', ['enrollment_id'], unique=False)

    # Notifications
    op.create_table('notifications',
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('priority', sa.String(length=6), server_default='NORMAL', nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=9), server_default='PENDING', nullable=False),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        *_base_columns(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_notification_user_id', ondelete='CASCADE'),
    )
    op.create_index(op.f('ix_notifications_user_id'), 'notifications', ['user_id'], unique=False)
    op.create_index(op.f('ix_notifications_status'), 'notifications', ['status'], unique=False)


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    for table in (
        'notifications',
        'assignment_submissions',
        'assignments',
        'library_fines',
        'book_returns',
        'book_issues',
        'books',
        'book_categories',
        'expenses',
        'payments',
        'invoice_items',
        'invoices',
        'fee_heads',
        'marks',
        'exam_schedules',
        'exams',
        'grades',
        'grading_systems',
        'student_attendances',
        'leave_requests',
        'staff_attendances',
        'teacher_class_assignments',
        'enrollments',
        'staff',
        'students',
        'guardians',
        'sections',
        'subjects',
        'class_levels',
        'academic_years',
        'users',
    ):
        op.drop_table(table)
