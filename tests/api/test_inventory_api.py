"""Tests for inventory catalogue, stock movements and alerts."""

import pytest


async def _item(client, headers, **overrides):
    body = {"name": "Nitrile gloves (box)", "current_stock": 10, "minimum_stock": 3, "unit_cost": 6.5, **overrides}
    response = await client.post("/api/v1/inventory/items", json=body, headers=headers)
    assert response.status_code == 201
    return response.json()["data"]


async def _checked_in_appointment(client, headers, patient_id):
    booked = await client.post(
        "/api/v1/appointments",
        json={"scheduled_time": "2030-05-06T10:00:00Z", "patient_id": patient_id},
        headers=headers,
    )
    appointment_id = booked.json()["data"]["id"]
    await client.post(f"/api/v1/appointments/{appointment_id}/status", json={"status": "checked_in"}, headers=headers)
    return appointment_id


@pytest.mark.asyncio
async def test_admin_builds_catalogue(client, clinic, clinic_admin, staff, headers_for):
    category = await client.post(
        "/api/v1/inventory/categories", json={"name": "Consumables"}, headers=headers_for(clinic_admin)
    )
    assert category.status_code == 201

    item = await _item(client, headers_for(clinic_admin), category_id=category.json()["data"]["id"])
    assert item["clinic_id"] == clinic.id

    ledger = await client.get("/api/v1/inventory/transactions", params={"item_id": item["id"]}, headers=headers_for(staff))
    opening = ledger.json()["data"][0]
    assert opening["transaction_type"] == "in"
    assert opening["quantity"] == 10
    assert opening["total_cost"] == 65.0


@pytest.mark.asyncio
async def test_rename_category(client, clinic, clinic_admin, outsider, headers_for):
    created = await client.post(
        "/api/v1/inventory/categories", json={"name": "Consumables"}, headers=headers_for(clinic_admin)
    )
    category_id = created.json()["data"]["id"]

    renamed = await client.patch(
        f"/api/v1/inventory/categories/{category_id}",
        json={"name": "Disposables"},
        headers=headers_for(clinic_admin),
    )
    assert renamed.status_code == 200
    assert renamed.json()["data"]["name"] == "Disposables"

    foreign = await client.patch(
        f"/api/v1/inventory/categories/{category_id}", json={"name": "Mine"}, headers=headers_for(outsider)
    )
    assert foreign.status_code == 403


@pytest.mark.asyncio
async def test_staff_cannot_create_items(client, clinic, staff, headers_for):
    response = await client.post("/api/v1/inventory/items", json={"name": "Floss"}, headers=headers_for(staff))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_restock_and_adjust(client, clinic, clinic_admin, staff, headers_for):
    item = await _item(client, headers_for(clinic_admin))

    restocked = await client.post(
        f"/api/v1/inventory/items/{item['id']}/restock", json={"quantity": 5}, headers=headers_for(staff)
    )
    assert restocked.json()["data"]["quantity"] == 5

    adjusted = await client.post(
        f"/api/v1/inventory/items/{item['id']}/adjust", json={"new_stock": 12}, headers=headers_for(clinic_admin)
    )
    assert adjusted.json()["data"]["transaction_type"] == "adjustment"
    assert adjusted.json()["data"]["quantity"] == -3

    current = await client.get(f"/api/v1/inventory/items/{item['id']}", headers=headers_for(staff))
    assert current.json()["data"]["current_stock"] == 12


@pytest.mark.asyncio
async def test_restock_rejects_zero_quantity(client, clinic, clinic_admin, staff, headers_for):
    item = await _item(client, headers_for(clinic_admin))
    response = await client.post(
        f"/api/v1/inventory/items/{item['id']}/restock", json={"quantity": 0}, headers=headers_for(staff)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_deduct_completes_appointment(client, clinic, patient, clinic_admin, staff, headers_for):
    gloves = await _item(client, headers_for(clinic_admin))
    anaesthetic = await _item(client, headers_for(clinic_admin), name="Lidocaine cartridge", current_stock=4)
    appointment_id = await _checked_in_appointment(client, headers_for(staff), patient.id)

    response = await client.post(
        "/api/v1/inventory/deduct",
        json={
            "appointment_id": appointment_id,
            "items": [{"item_id": gloves["id"], "quantity": 1}, {"item_id": anaesthetic["id"], "quantity": 2}],
        },
        headers=headers_for(staff),
    )

    assert response.status_code == 200
    assert {t["quantity"] for t in response.json()["data"]} == {-1, -2}
    appointment = await client.get(f"/api/v1/appointments/{appointment_id}", headers=headers_for(staff))
    assert appointment.json()["data"]["status"] == "completed"

    alerts = await client.get("/api/v1/inventory/alerts", headers=headers_for(staff))
    assert [a["alert_type"] for a in alerts.json()["data"]] == ["low_stock"]


@pytest.mark.asyncio
async def test_deduct_shortage_changes_nothing(client, clinic, patient, clinic_admin, staff, headers_for):
    gloves = await _item(client, headers_for(clinic_admin))
    appointment_id = await _checked_in_appointment(client, headers_for(staff), patient.id)

    response = await client.post(
        "/api/v1/inventory/deduct",
        json={"appointment_id": appointment_id, "items": [{"item_id": gloves["id"], "quantity": 11}]},
        headers=headers_for(staff),
    )

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "INSUFFICIENT_STOCK"
    assert error["details"]["shortages"][0]["available"] == 10

    current = await client.get(f"/api/v1/inventory/items/{gloves['id']}", headers=headers_for(staff))
    assert current.json()["data"]["current_stock"] == 10
    appointment = await client.get(f"/api/v1/appointments/{appointment_id}", headers=headers_for(staff))
    assert appointment.json()["data"]["status"] == "checked_in"


@pytest.mark.asyncio
async def test_resolve_alert(client, clinic, clinic_admin, staff, headers_for):
    await _item(client, headers_for(clinic_admin), name="Bibs", current_stock=0)
    alert = (await client.get("/api/v1/inventory/alerts", headers=headers_for(staff))).json()["data"][0]
    assert alert["alert_type"] == "out_of_stock"

    resolved = await client.post(f"/api/v1/inventory/alerts/{alert['id']}/resolve", headers=headers_for(staff))
    assert resolved.json()["data"]["is_resolved"] is True
    assert (await client.get("/api/v1/inventory/alerts", headers=headers_for(staff))).json()["data"] == []


@pytest.mark.asyncio
async def test_items_invisible_to_other_clinic(client, clinic, clinic_admin, outsider, headers_for):
    item = await _item(client, headers_for(clinic_admin))

    assert (await client.get(f"/api/v1/inventory/items/{item['id']}", headers=headers_for(outsider))).status_code == 403
    assert (await client.get("/api/v1/inventory/items", headers=headers_for(outsider))).json()["data"] == []
