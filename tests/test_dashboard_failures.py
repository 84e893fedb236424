import logging
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import config
from app.modules.dashboard import service as dashboard_service
from app.modules.finance.models import Invoice, InvoiceStatus, Payment, PaymentMethod
from app.modules.users.models import Role
from tests.factories import auth_headers, create_guardian, create_student, create_user


def _failing_read(exc):
    def factory(*args, **kwargs):
        async def _query(db):
            raise exc

        return _query

    return factory


async def _seed_payment(db):
    accountant = await create_user(db, Role.ACCOUNTANT, "accounts@school.test")
    guardian = await create_guardian(db)
    student = await create_student(db, guardian, "Rahim", "STU-2024-0001")
    today = datetime.utcnow().date()
    invoice = Invoice(
        invoice_number="INV-1",
        student_id=student.id,
        issue_date=today,
        due_date=today,
        total_amount=Decimal("500"),
        status=InvoiceStatus.PAID,
    )
    db.add(invoice)
    await db.flush()
    db.add(
        Payment(
            invoice_id=invoice.id,
            payment_date=datetime.utcnow(),
            amount_paid=Decimal("500"),
            payment_method=PaymentMethod.CASH,
        )
    )
    await db.commit()
    return auth_headers(accountant)


async def test_failing_revenue_chart_falls_back_to_empty_series(client, db, monkeypatch):
    headers = await _seed_payment(db)
    monkeypatch.setattr(dashboard_service, "_revenue_rows", _failing_read(RuntimeError("chart down")))

    response = await client.get("/api/accountant/dashboard/stats", headers=headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert Decimal(str(data["totalRevenue"])) == Decimal("500")
    chart = data["monthlyRevenueChart"]
    assert len(chart) == 12
    assert all(Decimal(str(point["amount"])) == 0 for point in chart)


@pytest.mark.parametrize("environment, shows_details", [("development", True), ("production", False)])
async def test_failing_required_read_is_a_logged_500(
    client, db, monkeypatch, caplog, environment, shows_details
):
    headers = await _seed_payment(db)
    monkeypatch.setattr(config, "environment", environment)
    monkeypatch.setattr(dashboard_service, "_sum", _failing_read(RuntimeError("ledger offline")))

    with caplog.at_level(logging.ERROR):
        response = await client.get("/api/accountant/dashboard/stats", headers=headers)

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "INTERNAL_ERROR"
    assert body["error"] == "Failed to fetch financial statistics"
    assert ("details" in body) is shows_details
    if shows_details:
        assert "ledger offline" in body["details"]
    assert "ledger offline" in caplog.text


async def test_failing_database_read_maps_to_database_error(client, db, monkeypatch):
    headers = await _seed_payment(db)
    monkeypatch.setattr(config, "environment", "production")
    monkeypatch.setattr(
        dashboard_service,
        "_sum",
        _failing_read(OperationalError("SELECT sum(amount_paid)", {}, Exception("disk I/O error"))),
    )

    response = await client.get("/api/accountant/dashboard/stats", headers=headers)

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "DATABASE_ERROR"
    assert "details" not in body
