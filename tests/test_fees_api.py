from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import Installment, SyncQueueEntry


async def _student(client: AsyncClient, headers: dict, name: str, grade: str = "5") -> dict:
    response = await client.post("/api/v1/students", json={"name": name, "grade": grade}, headers=headers)
    assert response.status_code == 201
    return response.json()


async def _installments(client: AsyncClient, headers: dict, **params) -> list:
    response = await client.get("/api/v1/installments", params=params, headers=headers)
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_fee_for_student_generates_installments(client: AsyncClient, headers: dict) -> None:
    student = await _student(client, headers, "Asha")
    response = await client.post(
        "/api/v1/fees",
        json={
            "name": "Tuition",
            "amount": "5000",
            "due_date": "2024-06-10",
            "student_id": student["id"],
            "installments": 2,
        },
        headers=headers,
    )
    assert response.status_code == 201
    fee = response.json()
    assert fee["students_scheduled"] == 1

    items = await _installments(client, headers, fee_id=fee["id"])
    assert [i["number"] for i in items] == [1, 2]
    assert all(Decimal(i["amount"]) == Decimal("2500") for i in items)
    assert all(i["status"] == "unpaid" for i in items)
    assert [i["due_date"] for i in items] == ["2024-06-10", "2024-07-10"]


@pytest.mark.asyncio
async def test_grade_fee_fans_out_to_every_student_of_grade(client: AsyncClient, headers: dict) -> None:
    a = await _student(client, headers, "Asha", grade="5")
    b = await _student(client, headers, "Bilal", grade="5")
    await _student(client, headers, "Chen", grade="6")

    response = await client.post(
        "/api/v1/fees",
        json={"name": "Lab", "amount": "900", "due_date": "2024-06-10", "grade": "5", "installments": 3},
        headers=headers,
    )
    assert response.status_code == 201
    assert response.json()["students_scheduled"] == 2

    items = await _installments(client, headers, fee_id=response.json()["id"])
    assert len(items) == 6
    assert {i["student_id"] for i in items} == {a["id"], b["id"]}


@pytest.mark.asyncio
async def test_single_payment_fee_has_no_schedule(client: AsyncClient, headers: dict) -> None:
    await _student(client, headers, "Asha")
    response = await client.post(
        "/api/v1/fees",
        json={"name": "Books", "amount": "300", "due_date": "2024-06-10", "grade": "5"},
        headers=headers,
    )
    assert response.status_code == 201
    assert await _installments(client, headers, fee_id=response.json()["id"]) == []


@pytest.mark.asyncio
async def test_fee_requires_target(client: AsyncClient, headers: dict) -> None:
    response = await client.post(
        "/api/v1/fees",
        json={"name": "Books", "amount": "300", "due_date": "2024-06-10"},
        headers=headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_fee_writes_are_queued_with_their_installments(
    client: AsyncClient, headers: dict, db_session: AsyncSession
) -> None:
    student = await _student(client, headers, "Asha")
    await client.post(
        "/api/v1/fees",
        json={"name": "Tuition", "amount": "1000", "due_date": "2024-06-10", "student_id": student["id"], "installments": 2},
        headers=headers,
    )
    entries = (await db_session.execute(select(SyncQueueEntry).order_by(SyncQueueEntry.id))).scalars().all()
    assert [(e.operation, e.entity) for e in entries] == [
        ("create", "school"),
        ("create", "student"),
        ("create", "fee"),
        ("create", "installment"),
        ("create", "installment"),
    ]
    assert all(e.state == "pending" for e in entries)
    assert entries[2].data["name"] == "Tuition"


@pytest.mark.asyncio
async def test_update_fee_regenerates_unpaid_schedule(client: AsyncClient, headers: dict) -> None:
    student = await _student(client, headers, "Asha")
    fee = (
        await client.post(
            "/api/v1/fees",
            json={"name": "Tuition", "amount": "5000", "due_date": "2024-06-10", "student_id": student["id"], "installments": 2},
            headers=headers,
        )
    ).json()

    response = await client.patch(f"/api/v1/fees/{fee['id']}", json={"amount": "6000", "installments": 3}, headers=headers)
    assert response.status_code == 200
    assert response.json()["students_scheduled"] == 1

    items = await _installments(client, headers, fee_id=fee["id"])
    assert [(i["number"], Decimal(i["amount"])) for i in items] == [
        (1, Decimal("2000")),
        (2, Decimal("2000")),
        (3, Decimal("2000")),
    ]


@pytest.mark.asyncio
async def test_update_fee_keeps_paid_installments(
    client: AsyncClient, headers: dict, db_session: AsyncSession
) -> None:
    student = await _student(client, headers, "Asha")
    fee = (
        await client.post(
            "/api/v1/fees",
            json={"name": "Tuition", "amount": "5000", "due_date": "2024-06-10", "student_id": student["id"], "installments": 2},
            headers=headers,
        )
    ).json()
    first = (await _installments(client, headers, fee_id=fee["id"]))[0]
    paid = await client.post(f"/api/v1/installments/{first['id']}/payments", json={"amount": "2500"}, headers=headers)
    assert paid.status_code == 201

    response = await client.patch(f"/api/v1/fees/{fee['id']}", json={"amount": "8500", "installments": 4}, headers=headers)
    assert response.status_code == 200

    items = await _installments(client, headers, fee_id=fee["id"])
    assert items[0]["id"] == first["id"]
    assert items[0]["status"] == "paid"
    assert [(i["number"], Decimal(i["amount"])) for i in items] == [
        (1, Decimal("2500")),
        (2, Decimal("2000")),
        (3, Decimal("2000")),
        (4, Decimal("2000")),
    ]

    # Dropping the paid installment is refused and nothing changes.
    response = await client.patch(f"/api/v1/fees/{fee['id']}", json={"installments": 1}, headers=headers)
    assert response.status_code == 400
    rows = (await db_session.execute(select(Installment).where(Installment.fee_id == fee["id"]))).scalars().all()
    assert len(rows) == 4


@pytest.mark.asyncio
async def test_delete_fee(client: AsyncClient, headers: dict) -> None:
    student = await _student(client, headers, "Asha")
    fee = (
        await client.post(
            "/api/v1/fees",
            json={"name": "Tuition", "amount": "5000", "due_date": "2024-06-10", "student_id": student["id"], "installments": 2},
            headers=headers,
        )
    ).json()
    response = await client.delete(f"/api/v1/fees/{fee['id']}", headers=headers)
    assert response.status_code == 204
    assert (await client.get(f"/api/v1/fees/{fee['id']}", headers=headers)).status_code == 404
    assert await _installments(client, headers, fee_id=fee["id"]) == []


@pytest.mark.asyncio
async def test_delete_fee_with_payments_refused(client: AsyncClient, headers: dict) -> None:
    student = await _student(client, headers, "Asha")
    fee = (
        await client.post(
            "/api/v1/fees",
            json={"name": "Books", "amount": "300", "due_date": "2024-06-10", "student_id": student["id"]},
            headers=headers,
        )
    ).json()
    paid = await client.post(
        "/api/v1/payments",
        json={"student_id": student["id"], "fee_id": fee["id"], "amount": "100"},
        headers=headers,
    )
    assert paid.status_code == 201

    response = await client.delete(f"/api/v1/fees/{fee['id']}", headers=headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_fees_are_scoped_by_school(client: AsyncClient, headers: dict) -> None:
    await _student(client, headers, "Asha")
    fee = (
        await client.post(
            "/api/v1/fees",
            json={"name": "Books", "amount": "300", "due_date": "2024-06-10", "grade": "5"},
            headers=headers,
        )
    ).json()
    other = (await client.post("/api/v1/schools", json={"name": "Other School"})).json()
    other_headers = {"X-School-Id": str(other["id"])}

    assert (await client.get(f"/api/v1/fees/{fee['id']}", headers=other_headers)).status_code == 404
    assert (await client.get("/api/v1/fees", headers=other_headers)).json() == []
    assert (await client.get("/api/v1/fees", headers={"X-School-Id": "9999"})).status_code == 404
