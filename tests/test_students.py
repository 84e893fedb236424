from datetime import datetime

from sqlalchemy import select

from app.modules.notifications.models import Notification
from app.modules.users.models import Role, User
from tests.factories import auth_headers, create_class, create_user, create_year


def _admission(class_level, section, year, **overrides):
    payload = {
        "name": "Rahim Uddin",
        "email": "Rahim@School.test",
        "dateOfBirth": "2014-02-01",
        "gender": "Male",
        "admissionDate": "2024-04-01",
        "presentAddress": "Dhaka",
        "permanentAddress": "Dhaka",
        "guardianName": "Karim Uddin",
        "relationToStudent": "Father",
        "guardianContactNumber": "01700000000",
        "guardianEmail": "karim@school.test",
        "academicYearId": year.id,
        "classLevelId": class_level.id,
        "sectionId": section.id,
    }
    payload.update(overrides)
    return payload


async def test_admission_creates_account_enrollment_and_welcome(client, db):
    admin = await create_user(db, Role.ADMIN, "admin@school.test")
    year = await create_year(db)
    class_level, section = await create_class(db)
    await db.commit()

    response = await client.post(
        "/api/admin/students", json=_admission(class_level, section, year), headers=auth_headers(admin)
    )

    assert response.status_code == 201
    data = response.json()["data"]
    student = data["student"]
    assert student["studentId"] == f"STU-{datetime.utcnow().year}-0001"
    assert student["email"] == "rahim@school.test"
    assert student["guardian"]["name"] == "Karim Uddin"
    assert student["enrollments"][0]["rollNumber"] == 1
    assert student["enrollments"][0]["className"] == "Grade 5"
    assert data["temporaryPassword"]

    user = await db.scalar(select(User).where(User.email == "rahim@school.test"))
    assert user.role == Role.STUDENT
    welcome = await db.scalar(select(Notification).where(Notification.user_id == user.id))
    assert welcome.title == "Welcome to EduPro"

    sibling = await client.post(
        "/api/admin/students",
        json=_admission(class_level, section, year, name="Salma Uddin", email=None),
        headers=auth_headers(admin),
    )
    assert sibling.status_code == 201
    assert sibling.json()["data"]["student"]["guardian"]["id"] == student["guardian"]["id"]
    assert sibling.json()["data"]["student"]["enrollments"][0]["rollNumber"] == 2
    assert sibling.json()["data"]["temporaryPassword"] is None

    listing = await client.get(
        "/api/admin/students", params={"search": "salma"}, headers=auth_headers(admin)
    )
    assert [s["name"] for s in listing.json()["data"]["students"]] == ["Salma Uddin"]


async def test_admission_conflicts(client, db):
    admin = await create_user(db, Role.ADMIN, "admin@school.test")
    year = await create_year(db)
    class_level, section = await create_class(db)
    other_level, _ = await create_class(db, name="Grade 6")
    await db.commit()
    headers = auth_headers(admin)

    await client.post(
        "/api/admin/students", json=_admission(class_level, section, year, rollNumber=7), headers=headers
    )

    taken_roll = await client.post(
        "/api/admin/students",
        json=_admission(class_level, section, year, email=None, rollNumber=7),
        headers=headers,
    )
    assert taken_roll.status_code == 400
    assert taken_roll.json()["code"] == "DUPLICATE_ROLL_NUMBER"

    taken_email = await client.post(
        "/api/admin/students",
        json=_admission(class_level, section, year, email="admin@school.test"),
        headers=headers,
    )
    assert taken_email.json()["code"] == "EMAIL_EXISTS"

    wrong_class = await client.post(
        "/api/admin/students",
        json=_admission(other_level, section, year, email=None),
        headers=headers,
    )
    assert wrong_class.status_code == 400


async def test_academic_year_setup(client, db):
    admin = await create_user(db, Role.ADMIN, "admin@school.test")
    await create_year(db, "2023-2024", is_current=True)
    await db.commit()
    headers = auth_headers(admin)

    created = await client.post(
        "/api/admin/academic-years",
        json={"year": "2024-2025", "startDate": "2024-04-01", "endDate": "2025-03-31", "isCurrent": True},
        headers=headers,
    )
    assert created.status_code == 201

    years = (await client.get("/api/admin/academic-years", headers=headers)).json()["data"]
    assert {y["year"]: y["isCurrent"] for y in years} == {"2024-2025": True, "2023-2024": False}

    duplicate = await client.post(
        "/api/admin/academic-years",
        json={"year": "2024-2025", "startDate": "2024-04-01", "endDate": "2025-03-31"},
        headers=headers,
    )
    assert duplicate.status_code == 400
    assert duplicate.json()["code"] == "DUPLICATE_ENTRY"

    backwards = await client.post(
        "/api/admin/academic-years",
        json={"year": "2030-2031", "startDate": "2031-04-01", "endDate": "2030-03-31"},
        headers=headers,
    )
    assert backwards.status_code == 400

    class_level = await client.post(
        "/api/admin/class-levels", json={"name": "Grade 7", "sections": ["A", "B", "A"]}, headers=headers
    )
    assert class_level.status_code == 201
    assert sorted(s["name"] for s in class_level.json()["data"]["sections"]) == ["A", "B"]
