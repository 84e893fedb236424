from decimal import Decimal

from app.modules.finance.models import FeeHead, Invoice, InvoiceStatus
from app.modules.students.models import Student
from app.modules.users.models import Role
from tests.factories import (
    auth_headers,
    create_class,
    create_guardian,
    create_student,
    create_user,
    create_year,
    enroll,
)


async def _seed_invoice(db, role=Role.ACCOUNTANT):
    user = await create_user(db, role, "accounts@school.test")
    guardian = await create_guardian(db)
    student = await create_student(db, guardian, "Rahim", "STU-2024-0001")
    invoice = Invoice(
        invoice_number="INV-2024-0001",
        student_id=student.id,
        issue_date=student.admission_date,
        due_date=student.admission_date,
        total_amount=Decimal("1000"),
    )
    db.add(invoice)
    await db.flush()
    await db.commit()
    return auth_headers(user), invoice


async def test_payments_move_invoice_to_partially_paid_then_paid(client, db):
    headers, invoice = await _seed_invoice(db)

    first = await client.post(
        "/api/admin/finance/payments",
        json={"invoiceId": invoice.id, "amountPaid": 400, "paymentMethod": "CASH"},
        headers=headers,
    )
    assert first.status_code == 201
    summary = first.json()["data"]["invoice"]
    assert summary["status"] == InvoiceStatus.PARTIALLY_PAID.value
    assert Decimal(str(summary["paidAmount"])) == Decimal("400")

    second = await client.post(
        "/api/admin/finance/payments",
        json={
            "invoiceId": invoice.id,
            "amountPaid": 600,
            "paymentMethod": "MOBILE_BANKING",
            "transactionId": "TXN-42",
        },
        headers=headers,
    )
    assert second.json()["data"]["invoice"]["status"] == InvoiceStatus.PAID.value
    assert second.json()["data"]["payment"]["transactionId"] == "TXN-42"

    listed = await client.get(
        "/api/admin/finance/payments", params={"invoiceId": invoice.id}, headers=headers
    )
    assert listed.json()["count"] == 2


async def test_payment_validation(client, db):
    headers, invoice = await _seed_invoice(db, role=Role.ADMIN)

    unknown = await client.post(
        "/api/admin/finance/payments",
        json={"invoiceId": 9999, "amountPaid": 10, "paymentMethod": "CASH"},
        headers=headers,
    )
    assert unknown.status_code == 404

    negative = await client.post(
        "/api/admin/finance/payments",
        json={"invoiceId": invoice.id, "amountPaid": -5, "paymentMethod": "CASH"},
        headers=headers,
    )
    assert negative.status_code == 400
    assert negative.json()["code"] == "VALIDATION_ERROR"


async def test_expenses_are_filtered_and_paginated(client, db):
    headers, _ = await _seed_invoice(db)
    for head, amount in [("Utilities", 120), ("Utilities", 80), ("Maintenance", 300)]:
        created = await client.post(
            "/api/admin/finance/expenses",
            json={"expenseHead": head, "amount": amount, "description": f"{head} bill"},
            headers=headers,
        )
        assert created.status_code == 201

    response = await client.get(
        "/api/admin/finance/expenses",
        params={"expenseHead": "util", "limit": 1},
        headers=headers,
    )

    data = response.json()["data"]
    assert len(data["expenses"]) == 1
    assert data["expenses"][0]["expenseHead"] == "Utilities"
    assert data["pagination"] == {"currentPage": 1, "totalPages": 2, "totalCount": 2, "limit": 1}


async def test_finance_is_closed_to_teachers(client, db):
    teacher = await create_user(db, Role.TEACHER, "teacher@school.test")
    await db.commit()

    response = await client.get("/api/admin/finance/expenses", headers=auth_headers(teacher))

    assert response.status_code == 403


async def _seed_fee_heads(db):
    user = await create_user(db, Role.ACCOUNTANT, "accounts@school.test")
    guardian = await create_guardian(db)
    student = await create_student(db, guardian, "Rahim", "STU-2024-0001")
    tuition = FeeHead(name="Tuition", description="Monthly tuition fee")
    transport = FeeHead(name="Transport", description="School bus")
    db.add_all([tuition, transport])
    await db.commit()
    return auth_headers(user), student, tuition, transport


async def test_fee_heads_are_created_and_searched(client, db):
    user = await create_user(db, Role.ACCOUNTANT, "accounts@school.test")
    await db.commit()
    headers = auth_headers(user)

    created = await client.post(
        "/api/admin/finance/fee-heads",
        json={"name": "Library", "description": "Annual library fee"},
        headers=headers,
    )
    duplicate = await client.post(
        "/api/admin/finance/fee-heads", json={"name": "Library"}, headers=headers
    )
    await client.post("/api/admin/finance/fee-heads", json={"name": "Tuition"}, headers=headers)
    searched = await client.get(
        "/api/admin/finance/fee-heads", params={"search": "annual"}, headers=headers
    )

    assert created.status_code == 201
    assert duplicate.json()["code"] == "DUPLICATE_ENTRY"
    assert [h["name"] for h in searched.json()["data"]] == ["Library"]


async def test_invoice_total_is_the_sum_of_its_items(client, db):
    headers, student, tuition, transport = await _seed_fee_heads(db)

    response = await client.post(
        "/api/admin/finance/invoices",
        json={
            "studentId": student.id,
            "issueDate": "2025-01-01",
            "dueDate": "2025-01-15",
            "items": [
                {"feeHeadId": tuition.id, "amount": 1500},
                {"feeHeadId": transport.id, "amount": 300.50},
            ],
        },
        headers=headers,
    )

    assert response.status_code == 201
    invoice = response.json()["data"]
    assert invoice["invoiceNumber"].startswith("INV-")
    assert invoice["invoiceNumber"].endswith("-0001")
    assert invoice["status"] == InvoiceStatus.PENDING.value
    assert Decimal(str(invoice["totalAmount"])) == Decimal("1800.50")
    assert Decimal(str(invoice["balance"])) == Decimal("1800.50")
    assert invoice["studentName"] == "Rahim"
    assert sorted(i["feeHeadName"] for i in invoice["items"]) == ["Transport", "Tuition"]
    assert invoice["isOverdue"] is True


async def test_invoice_validation(client, db):
    headers, student, tuition, _ = await _seed_fee_heads(db)
    base = {"studentId": student.id, "dueDate": "2099-01-15"}

    repeated_head = await client.post(
        "/api/admin/finance/invoices",
        json={**base, "items": [{"feeHeadId": tuition.id, "amount": 10}] * 2},
        headers=headers,
    )
    unknown_head = await client.post(
        "/api/admin/finance/invoices",
        json={**base, "items": [{"feeHeadId": 999, "amount": 10}]},
        headers=headers,
    )
    unknown_student = await client.post(
        "/api/admin/finance/invoices",
        json={**base, "studentId": 999, "items": [{"feeHeadId": tuition.id, "amount": 10}]},
        headers=headers,
    )
    no_items = await client.post(
        "/api/admin/finance/invoices", json={**base, "items": []}, headers=headers
    )

    assert repeated_head.status_code == 400
    assert unknown_head.status_code == 404
    assert unknown_student.status_code == 404
    assert no_items.status_code == 400


async def test_invoice_list_shows_balance_and_filters(client, db):
    headers, invoice = await _seed_invoice(db)
    await client.post(
        "/api/admin/finance/payments",
        json={"invoiceId": invoice.id, "amountPaid": 250, "paymentMethod": "CASH"},
        headers=headers,
    )

    by_name = await client.get(
        "/api/admin/finance/invoices", params={"search": "rahim"}, headers=headers
    )
    by_status = await client.get(
        "/api/admin/finance/invoices", params={"status": "PAID"}, headers=headers
    )

    listed = by_name.json()["data"]
    assert listed["pagination"]["totalCount"] == 1
    row = listed["invoices"][0]
    assert row["status"] == InvoiceStatus.PARTIALLY_PAID.value
    assert Decimal(str(row["totalPaid"])) == Decimal("250")
    assert Decimal(str(row["balance"])) == Decimal("750")
    assert by_status.json()["data"]["invoices"] == []


async def test_invoice_list_filters_by_class_level(client, db):
    headers, invoice = await _seed_invoice(db)
    year = await create_year(db)
    class_level, section = await create_class(db)
    other_class, _ = await create_class(db, "Grade 6")
    student = await db.get(Student, invoice.student_id)
    await enroll(db, student, class_level, section, year, 1)
    await db.commit()

    enrolled = await client.get(
        "/api/admin/finance/invoices", params={"classLevelId": class_level.id}, headers=headers
    )
    other = await client.get(
        "/api/admin/finance/invoices", params={"classLevelId": other_class.id}, headers=headers
    )

    assert [i["invoiceNumber"] for i in enrolled.json()["data"]["invoices"]] == ["INV-2024-0001"]
    assert other.json()["data"]["invoices"] == []
