from sqlalchemy import func, select

from app.modules.attendance.models import StudentAttendance
from app.modules.notifications.models import Notification
from app.modules.users.models import Role
from tests.factories import (
    assign_teacher,
    auth_headers,
    create_class,
    create_guardian,
    create_staff,
    create_student,
    create_user,
    create_year,
    enroll,
)


async def _seed(db, assigned=True):
    teacher_user = await create_user(db, Role.TEACHER, "teacher@school.test", name="Ms Rahman")
    teacher = await create_staff(db, teacher_user, "EMP-2024-001")
    year = await create_year(db)
    class_level, section = await create_class(db)
    if assigned:
        await assign_teacher(db, teacher, class_level, section)
    parent_user = await create_user(db, Role.GUARDIAN, "parent@school.test", name="Parent")
    guardian = await create_guardian(db, email="parent@school.test", user=parent_user)
    students = []
    for roll, name in enumerate(["Rahim", "Karim", "Salma"], start=1):
        student = await create_student(db, guardian, name, f"STU-2024-000{roll}")
        await enroll(db, student, class_level, section, year, roll)
        students.append(student)
    await db.commit()
    return auth_headers(teacher_user), class_level, section, students, parent_user


def _payload(class_level, section, students, status="PRESENT", day="2024-05-02"):
    return {
        "classLevelId": class_level.id,
        "sectionId": section.id,
        "studentIds": [s.id for s in students],
        "status": status,
        "date": day,
    }


async def test_bulk_marking_is_idempotent(client, db):
    headers, class_level, section, students, _ = await _seed(db)
    payload = _payload(class_level, section, students)

    first = await client.post("/api/teacher/attendance/bulk", json=payload, headers=headers)
    assert first.status_code == 201
    data = first.json()["data"]
    assert (data["created"], data["updated"]) == (3, 0)
    assert {r["studentName"] for r in data["records"]} == {"Rahim", "Karim", "Salma"}
    assert all(r["status"] == "PRESENT" for r in data["records"])

    second = await client.post(
        "/api/teacher/attendance/bulk", json={**payload, "status": "LATE"}, headers=headers
    )
    assert (second.json()["data"]["created"], second.json()["data"]["updated"]) == (0, 3)
    assert await db.scalar(select(func.count(StudentAttendance.id))) == 3

    listed = await client.get(
        "/api/teacher/attendance",
        params={"classLevelId": class_level.id, "sectionId": section.id, "date": "2024-05-02"},
        headers=headers,
    )
    assert listed.status_code == 200
    records = listed.json()["data"]
    assert [r["rollNumber"] for r in records] == [1, 2, 3]
    assert all(r["status"] == "LATE" for r in records)


async def test_unassigned_teacher_is_denied(client, db):
    headers, class_level, section, students, _ = await _seed(db, assigned=False)

    response = await client.post(
        "/api/teacher/attendance/bulk", json=_payload(class_level, section, students), headers=headers
    )

    assert response.status_code == 403
    assert response.json()["code"] == "CLASS_ACCESS_DENIED"
    assert await db.scalar(select(func.count(StudentAttendance.id))) == 0


async def test_student_outside_the_section_fails_the_whole_batch(client, db):
    headers, class_level, section, students, _ = await _seed(db)
    guardian = await create_guardian(db, name="Other Parent")
    stranger = await create_student(db, guardian, "Stranger", "STU-2024-0099")
    await db.commit()

    response = await client.post(
        "/api/teacher/attendance/bulk",
        json=_payload(class_level, section, students + [stranger]),
        headers=headers,
    )

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "STUDENTS_NOT_ENROLLED"
    assert body["details"] == {"studentIds": [stranger.id]}
    assert await db.scalar(select(func.count(StudentAttendance.id))) == 0


async def test_absence_notifies_guardian(client, db):
    headers, class_level, section, students, parent_user = await _seed(db)

    response = await client.post(
        "/api/teacher/attendance/bulk",
        json=_payload(class_level, section, students[:1], status="ABSENT"),
        headers=headers,
    )

    assert response.status_code == 201
    notifications = (
        await db.scalars(select(Notification).where(Notification.user_id == parent_user.id))
    ).all()
    assert len(notifications) == 1
    assert notifications[0].type == "ATTENDANCE"
    assert "Rahim" in notifications[0].content


async def test_teacher_without_staff_record(client, db):
    user = await create_user(db, Role.TEACHER, "nostaff@school.test")
    await db.commit()

    response = await client.get(
        "/api/teacher/attendance",
        params={"classLevelId": 1, "sectionId": 1},
        headers=auth_headers(user),
    )

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


async def test_repeated_absence_notifies_guardian_once(client, db):
    headers, class_level, section, students, parent_user = await _seed(db)
    payload = _payload(class_level, section, students[:1], status="ABSENT")

    for _ in range(3):
        response = await client.post("/api/teacher/attendance/bulk", json=payload, headers=headers)
        assert response.status_code == 201

    count = await db.scalar(
        select(func.count(Notification.id)).where(Notification.user_id == parent_user.id)
    )
    assert count == 1

    # Present in between, then absent again: a new absence worth reporting
    await client.post(
        "/api/teacher/attendance/bulk", json={**payload, "status": "PRESENT"}, headers=headers
    )
    await client.post("/api/teacher/attendance/bulk", json=payload, headers=headers)
    count = await db.scalar(
        select(func.count(Notification.id)).where(Notification.user_id == parent_user.id)
    )
    assert count == 2


async def test_marking_without_current_year_uses_latest_enrollment(client, db):
    teacher_user = await create_user(db, Role.TEACHER, "teacher@school.test")
    teacher = await create_staff(db, teacher_user, "EMP-2024-001")
    old_year = await create_year(db, "2023-2024", is_current=False)
    new_year = await create_year(db, "2024-2025", is_current=False)
    class_level, section = await create_class(db)
    await assign_teacher(db, teacher, class_level, section)
    guardian = await create_guardian(db)
    student = await create_student(db, guardian, "Rahim", "STU-2023-0001")
    await enroll(db, student, class_level, section, old_year, 4)
    latest = await enroll(db, student, class_level, section, new_year, 9)
    await db.commit()

    response = await client.post(
        "/api/teacher/attendance/bulk",
        json=_payload(class_level, section, [student]),
        headers=auth_headers(teacher_user),
    )

    assert response.status_code == 201
    records = response.json()["data"]["records"]
    assert [(r["enrollmentId"], r["rollNumber"]) for r in records] == [(latest.id, 9)]
