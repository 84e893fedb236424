from app.modules.users.models import Role
from tests.factories import (
    assign_teacher,
    auth_headers,
    create_class,
    create_staff,
    create_subject,
    create_user,
)


async def _seed(db):
    admin = await create_user(db, Role.ADMIN, "admin@school.test")
    teacher_user = await create_user(db, Role.TEACHER, "teacher@school.test", name="Nadia Rahman")
    teacher = await create_staff(db, teacher_user, "EMP-2024-001")
    class_level, section = await create_class(db)
    subject = await create_subject(db)
    await db.commit()
    return auth_headers(admin), teacher, class_level, section, subject


async def test_assign_teacher_to_class_subject(client, db):
    headers, teacher, class_level, section, subject = await _seed(db)

    response = await client.post(
        "/api/admin/teacher-assignments",
        json={
            "teacherId": teacher.id,
            "classLevelId": class_level.id,
            "sectionId": section.id,
            "subjectId": subject.id,
        },
        headers=headers,
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["teacherName"] == "Nadia Rahman"
    assert (data["className"], data["sectionName"], data["subjectName"]) == (
        "Grade 5",
        "A",
        "Mathematics",
    )


async def test_duplicate_class_teacher_assignment_is_rejected(client, db):
    headers, teacher, class_level, section, _ = await _seed(db)
    payload = {"teacherId": teacher.id, "classLevelId": class_level.id, "sectionId": section.id}

    first = await client.post("/api/admin/teacher-assignments", json=payload, headers=headers)
    second = await client.post("/api/admin/teacher-assignments", json=payload, headers=headers)

    assert first.status_code == 201
    assert first.json()["data"]["subjectId"] is None
    assert second.status_code == 400
    assert second.json()["code"] == "DUPLICATE_ENTRY"


async def test_assignment_validation(client, db):
    headers, teacher, class_level, section, _ = await _seed(db)
    accountant_user = await create_user(db, Role.ACCOUNTANT, "accounts@school.test")
    accountant = await create_staff(db, accountant_user, "EMP-2024-002", designation="Accountant")
    other_class, other_section = await create_class(db, "Grade 6")
    await db.commit()
    base = {"teacherId": teacher.id, "classLevelId": class_level.id, "sectionId": section.id}

    not_a_teacher = await client.post(
        "/api/admin/teacher-assignments", json={**base, "teacherId": accountant.id}, headers=headers
    )
    wrong_section = await client.post(
        "/api/admin/teacher-assignments", json={**base, "sectionId": other_section.id}, headers=headers
    )
    unknown_staff = await client.post(
        "/api/admin/teacher-assignments", json={**base, "teacherId": 999}, headers=headers
    )
    unknown_subject = await client.post(
        "/api/admin/teacher-assignments", json={**base, "subjectId": 999}, headers=headers
    )

    assert not_a_teacher.json()["code"] == "NOT_A_TEACHER"
    assert wrong_section.json()["code"] == "SECTION_CLASS_MISMATCH"
    assert unknown_staff.status_code == 404
    assert unknown_subject.status_code == 404


async def test_list_assignments_filters_by_teacher(client, db):
    headers, teacher, class_level, section, subject = await _seed(db)
    other_user = await create_user(db, Role.TEACHER, "other@school.test", name="Other Teacher")
    other = await create_staff(db, other_user, "EMP-2024-002")
    await assign_teacher(db, teacher, class_level, section, subject)
    await assign_teacher(db, other, class_level, section)
    await db.commit()

    response = await client.get(
        "/api/admin/teacher-assignments", params={"teacherId": teacher.id}, headers=headers
    )

    assert response.status_code == 200
    assert [a["subjectName"] for a in response.json()["data"]] == ["Mathematics"]
