from sqlalchemy import select

from app.modules.exams.models import GradingSystem
from app.modules.users.models import Role
from tests.factories import (
    auth_headers,
    create_class,
    create_grading_system,
    create_subject,
    create_user,
    create_year,
)


async def _admin(db):
    admin = await create_user(db, Role.ADMIN, "admin@school.test")
    year = await create_year(db)
    await db.commit()
    return auth_headers(admin), year


async def test_create_and_list_exams_with_schedule_counts(client, db):
    headers, year = await _admin(db)
    class_level, _ = await create_class(db)
    subject = await create_subject(db)
    await db.commit()

    created = await client.post(
        "/api/admin/exams/exams",
        json={"name": "Final Term", "academicYearId": year.id},
        headers=headers,
    )
    assert created.status_code == 201
    exam = created.json()["data"]
    assert exam["academicYearName"] == "2024-2025"
    assert exam["scheduleCount"] == 0

    await client.post(
        "/api/admin/exams/schedules",
        json={
            "examId": exam["id"],
            "classLevelId": class_level.id,
            "subjectId": subject.id,
            "examDate": "2025-03-10",
            "startTime": "09:00",
            "endTime": "11:00",
            "fullMarks": 100,
            "passMarks": 33,
        },
        headers=headers,
    )

    listed = await client.get(
        "/api/admin/exams/exams", params={"academicYearId": year.id, "search": "final"}, headers=headers
    )
    assert listed.status_code == 200
    data = listed.json()["data"]
    assert [(e["name"], e["scheduleCount"]) for e in data["exams"]] == [("Final Term", 1)]
    assert data["pagination"]["totalCount"] == 1


async def test_exam_name_is_unique_within_a_year(client, db):
    headers, year = await _admin(db)
    payload = {"name": "Midterm", "academicYearId": year.id}

    assert (await client.post("/api/admin/exams/exams", json=payload, headers=headers)).status_code == 201
    duplicate = await client.post("/api/admin/exams/exams", json=payload, headers=headers)

    assert duplicate.status_code == 400
    assert duplicate.json()["code"] == "DUPLICATE_ENTRY"


async def test_exam_for_unknown_year_is_not_found(client, db):
    headers, _ = await _admin(db)

    response = await client.post(
        "/api/admin/exams/exams", json={"name": "Midterm", "academicYearId": 999}, headers=headers
    )

    assert response.status_code == 404


async def test_schedules_are_listed_in_date_order_and_filtered(client, db):
    headers, year = await _admin(db)
    class_level, _ = await create_class(db)
    other_class, _ = await create_class(db, "Grade 6")
    maths = await create_subject(db)
    science = await create_subject(db, "Science", "SCI")
    await db.commit()
    exam = (
        await client.post(
            "/api/admin/exams/exams", json={"name": "Midterm", "academicYearId": year.id}, headers=headers
        )
    ).json()["data"]

    base = {"examId": exam["id"], "startTime": "09:00", "endTime": "11:00", "fullMarks": 50, "passMarks": 17}
    for class_id, subject_id, day in (
        (class_level.id, science.id, "2025-03-12"),
        (class_level.id, maths.id, "2025-03-10"),
        (other_class.id, maths.id, "2025-03-11"),
    ):
        response = await client.post(
            "/api/admin/exams/schedules",
            json={**base, "classLevelId": class_id, "subjectId": subject_id, "examDate": day},
            headers=headers,
        )
        assert response.status_code == 201

    listed = await client.get(
        "/api/admin/exams/schedules", params={"classLevelId": class_level.id}, headers=headers
    )

    schedules = listed.json()["data"]["examSchedules"]
    assert [(s["subjectName"], s["examDate"]) for s in schedules] == [
        ("Mathematics", "2025-03-10"),
        ("Science", "2025-03-12"),
    ]
    assert schedules[0]["examName"] == "Midterm"
    assert schedules[0]["className"] == "Grade 5"


async def test_schedule_rejects_duplicates_and_bad_marks(client, db):
    headers, year = await _admin(db)
    class_level, _ = await create_class(db)
    subject = await create_subject(db)
    await db.commit()
    exam = (
        await client.post(
            "/api/admin/exams/exams", json={"name": "Midterm", "academicYearId": year.id}, headers=headers
        )
    ).json()["data"]
    payload = {
        "examId": exam["id"],
        "classLevelId": class_level.id,
        "subjectId": subject.id,
        "examDate": "2025-03-10",
        "startTime": "09:00",
        "endTime": "11:00",
        "fullMarks": 100,
        "passMarks": 33,
    }

    assert (await client.post("/api/admin/exams/schedules", json=payload, headers=headers)).status_code == 201
    duplicate = await client.post("/api/admin/exams/schedules", json=payload, headers=headers)
    pass_above_full = await client.post(
        "/api/admin/exams/schedules", json={**payload, "passMarks": 120}, headers=headers
    )
    ends_before_start = await client.post(
        "/api/admin/exams/schedules", json={**payload, "endTime": "08:00"}, headers=headers
    )
    unknown_subject = await client.post(
        "/api/admin/exams/schedules", json={**payload, "subjectId": 999}, headers=headers
    )

    assert duplicate.json()["code"] == "DUPLICATE_ENTRY"
    assert pass_above_full.status_code == 400
    assert ends_before_start.status_code == 400
    assert unknown_subject.status_code == 404


async def test_new_default_grading_system_replaces_the_old_default(client, db):
    headers, _ = await _admin(db)
    await create_grading_system(db)
    await db.commit()

    response = await client.post(
        "/api/admin/exams/grading-systems",
        json={
            "name": "Pass/Fail",
            "isDefault": True,
            "grades": [
                {"gradeName": "P", "minPercentage": 40, "maxPercentage": 100, "points": 1},
                {"gradeName": "F", "minPercentage": 0, "maxPercentage": 39.99},
            ],
        },
        headers=headers,
    )

    assert response.status_code == 201
    created = response.json()["data"]
    assert [g["gradeName"] for g in created["grades"]] == ["P", "F"]

    listed = (await client.get("/api/admin/exams/grading-systems", headers=headers)).json()["data"]
    assert [(s["name"], s["isDefault"]) for s in listed] == [("Pass/Fail", True), ("Standard", False)]
    defaults = await db.scalars(select(GradingSystem.name).where(GradingSystem.is_default.is_(True)))
    assert defaults.all() == ["Pass/Fail"]


async def test_grading_system_rejects_overlapping_bands(client, db):
    headers, _ = await _admin(db)

    response = await client.post(
        "/api/admin/exams/grading-systems",
        json={
            "name": "Broken",
            "grades": [
                {"gradeName": "A", "minPercentage": 70, "maxPercentage": 100},
                {"gradeName": "B", "minPercentage": 50, "maxPercentage": 75},
            ],
        },
        headers=headers,
    )

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


async def test_exam_setup_requires_admin(client, db):
    teacher = await create_user(db, Role.TEACHER, "teacher@school.test")
    await db.commit()

    response = await client.get("/api/admin/exams/exams", headers=auth_headers(teacher))

    assert response.status_code == 403
