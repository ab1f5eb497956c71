def test_drawings_get_sequential_sr_no(auth_client):
    first = auth_client.post("/drawings", json={"description": "GFC Tower 1 slab", "record_date": "2025-03-10"})
    second = auth_client.post("/drawings", json={"description": "Podium layout", "category": "Approval"})
    assert first.status_code == 201
    assert first.json()["sr_no"] == 1
    assert second.json()["sr_no"] == 2

    page = auth_client.get("/drawings").json()
    assert page["total"] == 2
    assert page["next_sr_no"] == 3


def test_drawings_filter_by_year_and_month(auth_client):
    auth_client.post("/drawings", json={"description": "March issue", "record_date": "2025-03-10"})
    auth_client.post("/drawings", json={"description": "April issue", "record_date": "2025-04-01"})
    auth_client.post("/drawings", json={"description": "Undated"})

    march = auth_client.get("/drawings", params={"year": 2025, "month": 3}).json()
    assert [d["description"] for d in march["items"]] == ["March issue"]
    assert auth_client.get("/drawings", params={"year": 2024}).json()["total"] == 0


def test_drawings_pagination(auth_client):
    for i in range(12):
        auth_client.post("/drawings", json={"description": f"Sheet {i + 1}"})
    page2 = auth_client.get("/drawings", params={"page": 2, "page_size": 5}).json()
    assert [d["sr_no"] for d in page2["items"]] == [6, 7, 8, 9, 10]
    assert page2["total_pages"] == 3
    everything = auth_client.get("/drawings", params={"page_size": -1}).json()
    assert len(everything["items"]) == 12


def test_drawing_requires_description(auth_client):
    assert auth_client.post("/drawings", json={"description": ""}).status_code == 422
    assert auth_client.post("/drawings", json={"description": "x", "category": "Sketch"}).status_code == 422


def test_approval_requires_description(auth_client):
    assert auth_client.post("/approvals", json={"description": "   "}).status_code == 422
    assert auth_client.get("/approvals").json()["total"] == 0


def test_approval_status_flow(auth_client):
    r = auth_client.post("/approvals", json={"description": "Fire NOC", "record_date": "2025-05-05"})
    assert r.status_code == 201
    approval = r.json()
    assert approval["status"] == "Pending"

    r = auth_client.post(f"/approvals/{approval['sr_no']}/status", json={"status": "Approved"})
    assert r.json()["status"] == "Approved"
    assert auth_client.post(f"/approvals/{approval['sr_no']}/status", json={"status": "Done"}).status_code == 422

    auth_client.post("/approvals", json={"description": "Lift licence"})
    approved = auth_client.get("/approvals", params={"status": "Approved"}).json()
    assert [a["description"] for a in approved["items"]] == ["Fire NOC"]


def test_delete_approval(auth_client):
    sr_no = auth_client.post("/approvals", json={"description": "Fire NOC"}).json()["sr_no"]
    r = auth_client.delete(f"/approvals/{sr_no}")
    assert r.json()["deleted"] == sr_no
    assert auth_client.delete(f"/approvals/{sr_no}").status_code == 404
