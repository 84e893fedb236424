from datetime import datetime, timedelta
from decimal import Decimal

from app.modules.assignments.models import Assignment, AssignmentSubmission, SubmissionStatus
from app.modules.attendance.models import AttendanceStatus, StudentAttendance
from app.modules.exams.models import Marks
from app.modules.finance.models import (
    Expense,
    FeeHead,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    Payment,
    PaymentMethod,
)
from app.modules.library.models import (
    Book,
    BookCategory,
    BookIssue,
    BookIssueStatus,
    BookReturn,
    FineStatus,
    LibraryFine,
)
from app.modules.notifications.models import Notification, NotificationStatus
from app.modules.staff.models import LeaveRequest
from app.modules.users.models import Role
from tests.factories import (
    assign_teacher,
    auth_headers,
    create_class,
    create_exam_schedule,
    create_guardian,
    create_staff,
    create_student,
    create_subject,
    create_user,
    create_year,
    enroll,
)


def _money(value) -> Decimal:
    return Decimal(str(value))


def _timestamps(items):
    return [datetime.fromisoformat(item["timestamp"]) for item in items]


def _invoice(student, number, total, status, due_in_days=15):
    today = datetime.utcnow().date()
    return Invoice(
        invoice_number=number,
        student_id=student.id,
        issue_date=today - timedelta(days=30),
        due_date=today + timedelta(days=due_in_days),
        total_amount=Decimal(total),
        status=status,
    )


def _attendance(enrollment, statuses):
    today = datetime.utcnow().date()
    return [
        StudentAttendance(enrollment_id=enrollment.id, date=today - timedelta(days=offset), status=status)
        for offset, status in enumerate(statuses)
    ]


# ------------------------------------------------------------------ admin


async def test_admin_dashboard_counts_and_bounded_activity_feed(client, db):
    admin = await create_user(db, Role.ADMIN, "admin@school.test")
    year = await create_year(db)
    class_level, section = await create_class(db)
    subject = await create_subject(db)
    guardian = await create_guardian(db)
    students = []
    for index in range(7):
        student = await create_student(db, guardian, f"Student {index}", f"STU-2024-{index + 1:04d}")
        await enroll(db, student, class_level, section, year, index + 1)
        students.append(student)
    staff = []
    for index in range(4):
        user = await create_user(db, Role.TEACHER, f"teacher{index}@school.test", name=f"Teacher {index}")
        staff.append(await create_staff(db, user, f"EMP-2024-{index + 1:03d}"))
    today = datetime.utcnow().date()
    db.add(LeaveRequest(staff_id=staff[0].id, leave_type="Sick", start_date=today, end_date=today))
    await create_exam_schedule(db, year, class_level, subject, exam_date=today + timedelta(days=2))
    db.add(_invoice(students[0], "INV-1", "1000", InvoiceStatus.PENDING))
    db.add(_invoice(students[1], "INV-2", "1000", InvoiceStatus.PAID))
    await db.commit()

    response = await client.get("/api/admin/dashboard/stats", headers=auth_headers(admin))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["totalStudents"] == 7
    assert data["totalStaff"] == 4
    assert data["activeCourses"] == 1
    assert data["totalClasses"] == 1
    assert data["currentAcademicYear"]["name"] == "2024-2025"
    assert data["totalEnrollments"] == 7
    assert data["enrollmentRate"] == 100.0
    assert data["invoiceCompletionRate"] == 50.0
    assert data["pendingLeaveRequests"] == 1
    assert data["upcomingExams"] == 1
    assert data["pendingTasks"] == 3

    activities = data["recentActivities"]
    assert len(activities) == 10
    assert {a["type"] for a in activities} == {"enrollment", "staff_update", "system", "academic"}
    stamps = _timestamps(activities)
    assert stamps == sorted(stamps, reverse=True)


async def test_admin_dashboard_on_empty_school(client, db):
    admin = await create_user(db, Role.SUPERADMIN, "root@school.test")
    await db.commit()

    response = await client.get("/api/admin/dashboard/stats", headers=auth_headers(admin))

    data = response.json()["data"]
    assert data["totalStudents"] == 0
    assert data["enrollmentRate"] == 0.0
    assert data["invoiceCompletionRate"] == 0.0
    assert data["currentAcademicYear"] is None
    assert data["recentActivities"] == []


async def test_dashboard_requires_matching_role(client, db):
    student_user = await create_user(db, Role.STUDENT, "kid@school.test")
    await db.commit()

    response = await client.get("/api/admin/dashboard/stats", headers=auth_headers(student_user))

    assert response.status_code == 403
    assert response.json()["code"] == "INSUFFICIENT_PERMISSIONS"
    assert (await client.get("/api/admin/dashboard/stats")).status_code == 401


# ------------------------------------------------------------- accountant


async def test_accountant_dashboard_totals_chart_and_transactions(client, db):
    accountant = await create_user(db, Role.ACCOUNTANT, "accounts@school.test")
    guardian = await create_guardian(db)
    student = await create_student(db, guardian, "Rahim", "STU-2024-0001")
    tuition = FeeHead(name="Tuition")
    db.add(tuition)
    paid = _invoice(student, "INV-1", "1000", InvoiceStatus.PAID)
    pending = _invoice(student, "INV-2", "500", InvoiceStatus.PENDING)
    db.add_all([paid, pending])
    await db.flush()
    db.add_all([
        InvoiceItem(invoice_id=paid.id, fee_head_id=tuition.id, amount=Decimal("1000")),
        InvoiceItem(invoice_id=pending.id, fee_head_id=tuition.id, amount=Decimal("500")),
    ])
    now = datetime.utcnow()
    for index in range(12):
        db.add(
            Payment(
                invoice_id=paid.id,
                payment_date=now - timedelta(seconds=index),
                amount_paid=Decimal("100"),
                payment_method=PaymentMethod.CASH,
            )
        )
    for index in range(6):
        db.add(
            Expense(
                expense_head="Utilities",
                amount=Decimal("50"),
                expense_date=now - timedelta(seconds=index),
            )
        )
    await db.commit()

    response = await client.get("/api/accountant/dashboard/stats", headers=auth_headers(accountant))

    assert response.status_code == 200
    data = response.json()["data"]
    assert _money(data["totalRevenue"]) == Decimal("1200")
    assert _money(data["totalExpenses"]) == Decimal("300")
    assert _money(data["netProfit"]) == Decimal("900")
    assert _money(data["monthlyRevenue"]) == Decimal("1200")
    assert _money(data["pendingPayments"]) == Decimal("500")
    assert data["invoiceStats"] == {"total": 2, "paid": 1, "pending": 1, "overdue": 0}
    assert data["metrics"] == {"profitMargin": 75.0, "collectionRate": 50.0, "expenseRatio": 25.0}

    chart = data["monthlyRevenueChart"]
    assert len(chart) == 12
    assert chart[-1]["month"] == now.strftime("%Y-%m")
    assert _money(chart[-1]["amount"]) == Decimal("1200")
    assert all(_money(point["amount"]) == 0 for point in chart[:-1])

    [fee_head] = data["feeHeads"]
    assert fee_head["name"] == "Tuition"
    assert _money(fee_head["totalCollected"]) == Decimal("1000")
    assert _money(fee_head["totalPending"]) == Decimal("500")
    assert [c["category"] for c in data["expenseCategories"]] == ["Utilities"]

    transactions = data["recentTransactions"]
    assert len(transactions) == 15
    assert {t["type"] for t in transactions} == {"payment", "expense"}
    assert data["healthIndicators"] == {
        "cashFlow": "Positive",
        "collectionEfficiency": "Needs Improvement",
        "expenseControl": "Excellent",
    }


# -------------------------------------------------------------- librarian


async def test_librarian_dashboard(client, db):
    librarian = await create_user(db, Role.LIBRARIAN, "library@school.test")
    guardian = await create_guardian(db)
    student = await create_student(db, guardian, "Rahim", "STU-2024-0001")
    fiction, science = BookCategory(name="Fiction"), BookCategory(name="Science")
    db.add_all([fiction, science])
    await db.flush()
    dune = Book(title="Dune", author="Frank Herbert", category_id=fiction.id, total_copies=3, available_copies=1)
    emma = Book(title="Emma", author="Jane Austen", category_id=fiction.id, total_copies=2, available_copies=2)
    cosmos = Book(title="Cosmos", author="Carl Sagan", category_id=science.id, total_copies=1, available_copies=1)
    db.add_all([dune, emma, cosmos])
    await db.flush()

    now = datetime.utcnow()
    issues = [
        BookIssue(book_id=dune.id, student_id=student.id, issue_date=now - timedelta(days=3),
                  due_date=(now + timedelta(days=11)).date(), status=BookIssueStatus.ISSUED),
        BookIssue(book_id=dune.id, student_id=student.id, issue_date=now - timedelta(days=30),
                  due_date=(now - timedelta(days=16)).date(), status=BookIssueStatus.OVERDUE),
        BookIssue(book_id=cosmos.id, student_id=student.id, issue_date=now - timedelta(days=10),
                  due_date=(now + timedelta(days=4)).date(), status=BookIssueStatus.RETURNED),
    ]
    db.add_all(issues)
    await db.flush()
    db.add(BookReturn(book_issue_id=issues[2].id, book_id=cosmos.id, return_date=now - timedelta(hours=2), condition="Good"))
    db.add_all([
        LibraryFine(book_issue_id=issues[1].id, student_id=student.id, amount=Decimal("20"), status=FineStatus.PENDING),
        LibraryFine(book_issue_id=issues[2].id, student_id=student.id, amount=Decimal("10"), status=FineStatus.PAID),
    ])
    await db.commit()

    response = await client.get("/api/librarian/dashboard/stats", headers=auth_headers(librarian))

    assert response.status_code == 200
    data = response.json()["data"]
    assert (data["totalBooks"], data["totalCopies"], data["availableBooks"]) == (3, 6, 4)
    assert (data["issuedBooks"], data["overdueBooks"]) == (1, 1)
    assert _money(data["totalFines"]) == Decimal("30")
    assert _money(data["pendingFines"]) == Decimal("20")
    assert data["metrics"]["utilizationRate"] == 33.33
    assert data["metrics"]["overdueRate"] == 100.0
    assert data["metrics"]["averageBooksPerCategory"] == 2
    assert data["metrics"]["collectionHealth"] == "Good"
    assert data["popularBooks"][0]["title"] == "Dune"
    assert data["popularBooks"][0]["issueCount"] == 2
    assert [(c["name"], c["bookCount"]) for c in data["categories"]] == [("Fiction", 2), ("Science", 1)]
    assert data["insights"] == {"mostActiveCategory": "Fiction", "collectionSize": 3, "needsAttention": False}

    activities = data["recentActivities"]
    assert len(activities) == 4
    assert activities[0]["type"] == "return"
    assert activities[0]["timeAgo"] == "2 hours ago"
    assert {a["type"] for a in activities} == {"issue", "return"}


# ---------------------------------------------------------------- student


async def _seed_student(db):
    user = await create_user(db, Role.STUDENT, "rahim@school.test", name="Rahim")
    year = await create_year(db)
    class_level, section = await create_class(db)
    subject = await create_subject(db)
    guardian = await create_guardian(db)
    student = await create_student(db, guardian, "Rahim", "STU-2024-0001", user=user)
    enrollment = await enroll(db, student, class_level, section, year, 1)
    teacher = await create_staff(db, await create_user(db, Role.TEACHER, "t@school.test"), "EMP-2024-001")
    return user, student, enrollment, year, class_level, section, subject, teacher


async def test_student_dashboard(client, db):
    user, student, enrollment, year, class_level, section, subject, teacher = await _seed_student(db)
    now = datetime.utcnow()

    def homework(title, due):
        return Assignment(
            title=title,
            teacher_id=teacher.id,
            subject_id=subject.id,
            class_level_id=class_level.id,
            section_id=section.id,
            due_date=due,
            max_marks=Decimal("10"),
        )

    overdue, upcoming, graded = (
        homework("Fractions", now - timedelta(days=2)),
        homework("Decimals", now + timedelta(days=3)),
        homework("Geometry", now - timedelta(days=1)),
    )
    db.add_all([overdue, upcoming, graded])
    await db.flush()
    db.add(
        AssignmentSubmission(
            assignment_id=graded.id,
            enrollment_id=enrollment.id,
            submitted_at=now - timedelta(days=2),
            status=SubmissionStatus.GRADED,
            marks_obtained=Decimal("8"),
        )
    )
    db.add_all(_attendance(enrollment, [
        AttendanceStatus.PRESENT, AttendanceStatus.LATE, AttendanceStatus.PRESENT, AttendanceStatus.ABSENT,
    ]))
    schedule = await create_exam_schedule(db, year, class_level, subject)
    db.add(Marks(enrollment_id=enrollment.id, exam_schedule_id=schedule.id,
                 marks_obtained=Decimal("85"), percentage=85.0))
    db.add_all([
        Notification(user_id=user.id, type="GENERAL", title="Welcome", content="Hello"),
        Notification(user_id=user.id, type="GENERAL", title="Reminder", content="Homework"),
        Notification(user_id=user.id, type="GENERAL", title="Old", content="Read",
                     status=NotificationStatus.READ),
    ])
    db.add(_invoice(student, "INV-7", "1500", InvoiceStatus.PENDING))
    await db.commit()

    response = await client.get(
        "/api/student/dashboard/stats", params={"userId": user.id}, headers=auth_headers(user)
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert (
        data["pendingAssignments"],
        data["submittedAssignments"],
        data["gradedAssignments"],
        data["overdueAssignments"],
    ) == (1, 0, 1, 1)
    assert data["assignmentCompletion"] == 33.33
    assert data["averageGrade"] == 85.0
    assert data["attendanceRate"] == 75.0
    assert data["upcomingExams"] == 1
    assert data["unreadNotifications"] == 2
    assert data["feeStatus"]["invoiceNumber"] == "INV-7"
    assert {a["title"]: a["status"] for a in data["assignments"]} == {
        "Fractions": "overdue",
        "Decimals": "pending",
        "Geometry": "graded",
    }
    [activity] = data["recentActivities"]
    assert activity["type"] == "grade"
    assert "Mathematics" in activity["title"]


async def test_student_dashboard_without_enrollment(client, db):
    user = await create_user(db, Role.STUDENT, "new@school.test")
    guardian = await create_guardian(db)
    await create_student(db, guardian, "New Kid", "STU-2024-0002", user=user)
    await db.commit()

    response = await client.get("/api/student/dashboard/stats", headers=auth_headers(user))

    data = response.json()["data"]
    assert data["attendanceRate"] == 0.0
    assert data["assignments"] == []
    assert data["feeStatus"] is None


async def test_student_dashboard_ownership_and_missing_record(client, db):
    user = await create_user(db, Role.STUDENT, "ghost@school.test")
    await db.commit()
    headers = auth_headers(user)

    foreign = await client.get(
        "/api/student/dashboard/stats", params={"userId": user.id + 100}, headers=headers
    )
    assert foreign.status_code == 403
    assert foreign.json()["code"] == "OWNERSHIP_MISMATCH"

    missing = await client.get("/api/student/dashboard/stats", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["code"] == "NOT_FOUND"


# --------------------------------------------------------------- guardian


async def test_guardian_dashboard(client, db):
    parent = await create_user(db, Role.GUARDIAN, "parent@school.test", name="Parent")
    year = await create_year(db)
    class_level, section = await create_class(db)
    subject = await create_subject(db)
    guardian = await create_guardian(db, email="parent@school.test", user=parent)
    amina = await create_student(db, guardian, "Amina", "STU-2024-0001")
    bilal = await create_student(db, guardian, "Bilal", "STU-2024-0002")
    amina_enrollment = await enroll(db, amina, class_level, section, year, 1)
    await enroll(db, bilal, class_level, section, year, 2)
    db.add_all(_attendance(amina_enrollment, [AttendanceStatus.PRESENT, AttendanceStatus.ABSENT]))
    invoice = _invoice(amina, "INV-1", "1000", InvoiceStatus.PARTIALLY_PAID, due_in_days=-10)
    db.add(invoice)
    await db.flush()
    db.add(Payment(invoice_id=invoice.id, payment_date=datetime.utcnow(),
                   amount_paid=Decimal("400"), payment_method=PaymentMethod.CARD))
    await create_exam_schedule(db, year, class_level, subject)
    db.add(Notification(user_id=parent.id, type="ATTENDANCE", title="Absence", content="Amina absent"))
    await db.commit()

    response = await client.get("/api/guardian/dashboard/stats", headers=auth_headers(parent))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["totalChildren"] == 2
    assert [c["name"] for c in data["childrenProgress"]] == ["Amina", "Bilal"]
    assert data["childrenProgress"][0]["class"] == "Grade 5"
    assert data["childrenProgress"][0]["attendanceRate"] == 50.0
    assert data["attendanceRate"] == 50.0

    [alert] = data["attendanceAlerts"]
    assert alert["studentName"] == "Amina"
    assert alert["severity"] == "high"

    assert _money(data["pendingFees"]) == Decimal("600")
    assert {k: _money(v) for k, v in data["feesSummary"].items()} == {
        "totalDue": Decimal("600"),
        "totalPaid": Decimal("400"),
        "overdue": Decimal("600"),
    }
    fees = {f["studentName"]: f for f in data["feeStatus"]}
    assert fees["Amina"]["overdueDays"] == 10
    assert _money(fees["Bilal"]["totalDue"]) == Decimal("0")

    [event] = data["upcomingEvents"]
    assert event["title"] == "Midterm - Mathematics"
    assert event["class"] == "Grade 5"
    assert data["upcomingExams"] == 1
    assert data["unreadMessages"] == 1


async def test_guardian_without_children_and_missing_record(client, db):
    parent = await create_user(db, Role.GUARDIAN, "lonely@school.test")
    stranger = await create_user(db, Role.GUARDIAN, "stranger@school.test")
    await create_guardian(db, user=parent)
    await db.commit()

    empty = await client.get("/api/guardian/dashboard/stats", headers=auth_headers(parent))
    assert empty.status_code == 200
    assert empty.json()["data"]["totalChildren"] == 0
    assert empty.json()["data"]["childrenProgress"] == []

    foreign = await client.get(
        "/api/guardian/dashboard/stats", params={"userId": stranger.id}, headers=auth_headers(parent)
    )
    assert foreign.status_code == 403

    missing = await client.get("/api/guardian/dashboard/stats", headers=auth_headers(stranger))
    assert missing.status_code == 404


async def test_guardian_upcoming_exam_count_is_not_capped_by_the_event_list(client, db):
    parent = await create_user(db, Role.GUARDIAN, "parent@school.test")
    year = await create_year(db)
    class_level, section = await create_class(db)
    subject = await create_subject(db)
    guardian = await create_guardian(db, user=parent)
    child = await create_student(db, guardian, "Amina", "STU-2024-0001")
    await enroll(db, child, class_level, section, year, 1)
    today = datetime.utcnow().date()
    for offset in range(12):
        await create_exam_schedule(db, year, class_level, subject, exam_date=today + timedelta(days=offset))
    await db.commit()

    response = await client.get("/api/guardian/dashboard/stats", headers=auth_headers(parent))

    data = response.json()["data"]
    assert data["upcomingExams"] == 12
    assert len(data["upcomingEvents"]) == 10


# ---------------------------------------------------------------- teacher


async def test_teacher_dashboard(client, db):
    user = await create_user(db, Role.TEACHER, "teacher@school.test", name="Ms Rahman")
    teacher = await create_staff(db, user, "EMP-2024-001")
    year = await create_year(db)
    class_level, section = await create_class(db)
    subject = await create_subject(db)
    await assign_teacher(db, teacher, class_level, section, subject)
    guardian = await create_guardian(db)
    first = await enroll(db, await create_student(db, guardian, "Rahim", "STU-2024-0001"), class_level, section, year, 1)
    second = await enroll(db, await create_student(db, guardian, "Karim", "STU-2024-0002"), class_level, section, year, 2)
    db.add_all(_attendance(first, [AttendanceStatus.PRESENT]))
    db.add_all(_attendance(second, [AttendanceStatus.ABSENT]))
    now = datetime.utcnow()
    homework = Assignment(
        title="Fractions",
        teacher_id=teacher.id,
        subject_id=subject.id,
        class_level_id=class_level.id,
        section_id=section.id,
        due_date=now + timedelta(days=2),
    )
    db.add(homework)
    await db.flush()
    db.add(AssignmentSubmission(assignment_id=homework.id, enrollment_id=first.id,
                                submitted_at=now - timedelta(minutes=30), status=SubmissionStatus.SUBMITTED))
    schedule = await create_exam_schedule(db, year, class_level, subject, exam_date=now.date() + timedelta(days=5))
    db.add(Marks(enrollment_id=first.id, exam_schedule_id=schedule.id,
                 marks_obtained=Decimal("70"), percentage=70.0))
    await db.commit()

    response = await client.get("/api/teacher/dashboard/stats", headers=auth_headers(user))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["totalStudents"] == 2
    assert data["totalClasses"] == 1
    assert data["pendingTasks"] == 1
    assert data["averageAttendance"] == 50.0
    assert data["assignmentCompletion"] == 50.0
    assert data["averageGrade"] == 70.0
    assert data["upcomingExams"] == 1
    [overview] = data["classes"]
    assert overview["name"] == "Grade 5 - A"
    assert overview["subject"] == "Mathematics"
    assert overview["studentCount"] == 2
    [activity] = data["recentActivities"]
    assert activity["type"] == "submission"
    assert activity["title"] == "Rahim submitted an assignment"


async def test_teacher_without_staff_record(client, db):
    user = await create_user(db, Role.TEACHER, "nostaff@school.test")
    await db.commit()

    response = await client.get("/api/teacher/dashboard/stats", headers=auth_headers(user))

    assert response.status_code == 404
