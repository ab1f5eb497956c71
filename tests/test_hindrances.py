def _hindrance(**overrides):
    body = {
        "tower": "Tower1",
        "sr_no": 1,
        "item_particulars": "Shuttering material shortage",
        "start_from": "2025-02-01",
        "resolved_on": "2025-02-11",
        "reason_shortfall": "Supplier delay",
    }
    body.update(overrides)
    return body


def test_create_normalizes_tower_and_derives_period(auth_client):
    r = auth_client.post("/hindrances", json=_hindrance())
    assert r.status_code == 201, r.text
    row = r.json()
    assert row["tower"] == "tower1"
    assert row["period_in_days"] == 10


def test_list_filters_by_tower_in_id_order(auth_client):
    auth_client.post("/hindrances", json=_hindrance(sr_no=1))
    auth_client.post("/hindrances", json=_hindrance(tower="tower2", sr_no=1))
    auth_client.post("/hindrances", json=_hindrance(sr_no=2, period_in_days=3))
    rows = auth_client.get("/hindrances", params={"tower": "TOWER1"}).json()
    assert [r["sr_no"] for r in rows] == [1, 2]
    assert rows[1]["period_in_days"] == 3
    assert auth_client.get("/hindrances", params={"tower": "tower9"}).status_code == 400


def test_validation_error_writes_nothing(auth_client):
    r = auth_client.post("/hindrances", json=_hindrance(item_particulars="  "))
    assert r.status_code == 422
    assert auth_client.get("/hindrances").json() == []


def test_update_and_delete(auth_client):
    row = auth_client.post("/hindrances", json=_hindrance()).json()
    r = auth_client.put(f"/hindrances/{row['id']}", json=_hindrance(remarks="Resolved by site team"))
    assert r.status_code == 200
    assert r.json()["remarks"] == "Resolved by site team"

    r = auth_client.delete(f"/hindrances/{row['id']}")
    assert r.json() == {"message": "Deleted successfully", "deleted": row["id"]}
    assert auth_client.delete(f"/hindrances/{row['id']}").status_code == 404
    assert auth_client.put(f"/hindrances/{row['id']}", json=_hindrance()).status_code == 404


def test_other_inputs_crud(auth_client):
    r = auth_client.post("/other-inputs", json={"sr_no": 1, "content": "Crane inspection due"})
    assert r.status_code == 201
    input_id = r.json()["id"]
    auth_client.put(f"/other-inputs/{input_id}", json={"sr_no": 1, "content": "Crane inspected"})
    assert auth_client.get("/other-inputs").json()[0]["content"] == "Crane inspected"
    assert auth_client.post("/other-inputs", json={"sr_no": 2, "content": ""}).status_code == 422
    auth_client.delete(f"/other-inputs/{input_id}")
    assert auth_client.get("/other-inputs").json() == []
