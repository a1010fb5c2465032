from datetime import date, timedelta

def _create_component(client, headers, **overrides):
    body = {"name": "Arduino Uno", "category": "Microcontrollers", "totalQuantity": 10, "threshold": 5, "tags": ["arduino"]}
    body.update(overrides)
    resp = client.post("/api/admin/components", json=body, headers=headers)
    assert resp.status_code == 201
    return resp.json()

def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["service"] == "labinventory"
    assert client.get("/health/live").json() == {"status": "alive"}

def test_public_catalog(client, admin_headers):
    _create_component(client, admin_headers, tags=["arduino", "mcu"])
    resp = client.get("/api/components/")
    assert resp.status_code == 200
    assert [c["name"] for c in resp.json()] == ["Arduino Uno"]
    assert client.get("/api/components/tags").json() == ["arduino", "mcu"]
    assert client.get("/api/components/categories").json() == ["Microcontrollers"]

def test_auth_required(client, student_headers):
    resp = client.get("/api/student/components")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized", "detail": "Missing bearer token"}

    bad = {"Authorization": "Bearer not-a-token"}
    resp = client.get("/api/student/components", headers=bad)
    assert resp.status_code == 401
    assert resp.json()["error"] == "Unauthorized"

    resp = client.get("/api/admin/components", headers=student_headers)
    assert resp.status_code == 403
    assert resp.json() == {"error": "PermissionDenied", "detail": "Admin privileges required"}

def test_component_crud_uses_camel_case(client, admin_headers):
    created = _create_component(client, admin_headers)
    cid = created["componentId"]
    assert created["availableQuantity"] == 10
    assert "available_quantity" not in created

    resp = client.put(f"/api/admin/components/{cid}", json={"totalQuantity": 20}, headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["availableQuantity"] == 20

    assert client.delete(f"/api/admin/components/{cid}", headers=admin_headers).status_code == 204
    resp = client.get(f"/api/admin/components/{cid}", headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "NotFound"

def test_validation_errors_are_400(client, admin_headers):
    resp = client.post("/api/admin/components", json={"category": "Sensors"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "ValidationError"

    resp = client.post("/api/admin/components", json={"name": "X", "category": "Y", "totalQuantity": "lots"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "ValidationError"

def test_bulk_import_report(client, admin_headers):
    resp = client.post(
        "/api/admin/components/bulk",
        json={"components": [{"name": "LED", "category": "LEDs", "totalQuantity": 5}, {"category": "LEDs"}]},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    report = resp.json()
    assert (report["created"], report["failed"]) == (1, 1)
    assert report["results"][1]["error"] == "ValidationError"

def test_borrow_flow(client, admin_headers, student_headers):
    comp = _create_component(client, admin_headers)
    cid = comp["componentId"]
    due = (date.today() + timedelta(days=7)).isoformat()

    resp = client.post(
        "/api/student/borrow",
        json={"componentId": cid, "quantity": 3, "expectedReturnDate": due},
        headers=student_headers,
    )
    assert resp.status_code == 201
    record = resp.json()
    assert record["status"] == "pending"
    assert record["userId"] == "stu-1"
    rid = record["recordId"]

    pending = client.get("/api/admin/borrowing-records", params={"status": "pending"}, headers=admin_headers).json()
    assert [r["recordId"] for r in pending] == [rid]

    resp = client.post(f"/api/admin/borrowing-records/{rid}/approve", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "borrowed"
    assert client.get(f"/api/admin/components/{cid}", headers=admin_headers).json()["availableQuantity"] == 7

    resp = client.post(f"/api/student/components/{cid}/return", json={"recordId": rid}, headers=student_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "returned"
    assert client.get(f"/api/admin/components/{cid}", headers=admin_headers).json()["availableQuantity"] == 10

    resp = client.post(f"/api/student/components/{cid}/return", json={"recordId": rid}, headers=student_headers)
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidTransition"

    history = client.get("/api/student/borrowing-history/stu-1", headers=student_headers).json()
    assert [r["recordId"] for r in history] == [rid]

def test_borrow_more_than_available(client, admin_headers, student_headers):
    cid = _create_component(client, admin_headers, totalQuantity=2)["componentId"]
    resp = client.post(
        "/api/student/borrow",
        json={"componentId": cid, "quantity": 3, "expectedReturnDate": date.today().isoformat()},
        headers=student_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "InsufficientStock"

def test_reject_without_body(client, admin_headers, student_headers):
    cid = _create_component(client, admin_headers)["componentId"]
    rid = client.post(
        "/api/student/borrow",
        json={"componentId": cid, "expectedReturnDate": date.today().isoformat()},
        headers=student_headers,
    ).json()["recordId"]
    resp = client.post(f"/api/admin/borrowing-records/{rid}/reject", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"

def test_other_users_history_is_forbidden(client, student_headers, admin_headers):
    resp = client.get("/api/student/borrowing-history/stu-2", headers=student_headers)
    assert resp.status_code == 403
    assert resp.json()["error"] == "PermissionDenied"
    assert client.get("/api/student/borrowing-history/stu-2", headers=admin_headers).status_code == 200

def test_recommendations(client, admin_headers, student_headers):
    _create_component(client, admin_headers, name="Arduino Uno", tags=["arduino", "usb"])
    _create_component(client, admin_headers, name="USB Hub", tags=["usb"])
    resp = client.get("/api/student/recommendations", params={"tags": "usb,arduino"}, headers=student_headers)
    assert [(r["name"], r["matchScore"]) for r in resp.json()] == [("Arduino Uno", 2), ("USB Hub", 1)]

def test_procurement_endpoints(client, admin_headers):
    _create_component(client, admin_headers, name="Servo", totalQuantity=3)
    resp = client.post("/api/admin/procurement", json={"itemName": "Wire", "quantity": 10}, headers=admin_headers)
    assert resp.status_code == 201
    created = resp.json()
    assert created["requestedBy"] == "admin-1"
    assert created["priority"] == "MEDIUM"

    items = client.get("/api/admin/procurement", headers=admin_headers).json()
    assert [(i["itemName"], i["isAutoGenerated"]) for i in items] == [("Wire", False), ("Servo", True)]
    assert items[1]["quantity"] == 7

    resp = client.put(f"/api/admin/procurement/{created['requestId']}", json={"priority": "urgent"}, headers=admin_headers)
    assert resp.status_code == 400

def test_dashboard_endpoints(client, admin_headers):
    _create_component(client, admin_headers, totalQuantity=3)
    stats = client.get("/api/admin/dashboard", headers=admin_headers).json()
    assert stats["totalComponents"] == 1
    assert stats["lowStockAlerts"] == 1
    urgent = client.get("/api/admin/dashboard/urgent-actions", headers=admin_headers).json()
    assert len(urgent["procurementAlerts"]) == 1
    assert urgent["overdueItems"] == []
