def test_tower_finish_variance_and_class(auth_client):
    r = auth_client.post("/tower-finish-dates", json={
        "tower": "T1", "planned_finish": "2026-03-31", "projected_finish": "2026-04-15",
    })
    assert r.status_code == 201, r.text
    row = r.json()
    assert row["finish_variance_days"] == 15
    assert row["variance_class"] == "behind"

    r = auth_client.post("/tower-finish-dates", json={
        "tower": "T2", "planned_finish": "2026-03-31", "projected_finish": "2026-04-15",
        "finish_variance_days": -2,
    })
    assert r.json()["variance_class"] == "ahead"
    assert r.json()["computed_variance_days"] == 15


def test_tower_finish_duplicate_tower_is_conflict(auth_client):
    body = {"tower": "T3", "planned_finish": "2026-01-01", "projected_finish": "2026-01-01"}
    assert auth_client.post("/tower-finish-dates", json=body).json()["variance_class"] == "on"
    r = auth_client.post("/tower-finish-dates", json=body)
    assert r.status_code == 409
    assert auth_client.get("/tower-finish-dates").json()["total"] == 1


def test_tower_finish_listing_is_ordered_and_paginated(auth_client):
    for tower in ["T4", "T1", "STP"]:
        auth_client.post("/tower-finish-dates", json={
            "tower": tower, "planned_finish": "2026-01-01", "projected_finish": "2026-01-05",
        })
    page = auth_client.get("/tower-finish-dates", params={"page_size": 2}).json()
    assert [r["tower"] for r in page["items"]] == ["STP", "T1"]
    assert page["total_pages"] == 2


def test_steel_stock_filter_and_totals(auth_client):
    for dia, received, stock, consumed in [("8mm", 10, 4, 6), ("12mm", 20, 5, 15), ("16mm", 30, 10, 20)]:
        r = auth_client.post("/steel-stock", json={
            "dia": dia, "total_received": received, "stock_at_site": stock, "consumed": consumed,
        })
        assert r.status_code == 201

    report = auth_client.get("/steel-stock").json()
    assert [r["sr_no"] for r in report["records"]] == [1, 2, 3]
    assert report["totals"] == {"total_received": 60, "stock_at_site": 19, "consumed": 41}

    filtered = auth_client.get("/steel-stock", params={"dia": "1"}).json()
    assert [r["dia"] for r in filtered["records"]] == ["12mm", "16mm"]
    assert filtered["totals"]["consumed"] == 35

    assert auth_client.post("/steel-stock", json={"dia": " "}).status_code == 422


def test_non_negotiable_toggle(auth_client):
    r = auth_client.post("/non-negotiables", json={"tower": "T1", "task_description": "Cube testing"})
    task = r.json()
    assert task["is_completed"] is False
    assert auth_client.post(f"/non-negotiables/{task['id']}/toggle").json()["is_completed"] is True
    assert auth_client.post(f"/non-negotiables/{task['id']}/toggle").json()["is_completed"] is False
    assert auth_client.post("/non-negotiables/999/toggle").status_code == 404


def test_critical_issue_categories(auth_client):
    r = auth_client.post("/critical-issues", json={"issue_description": "Labour shortage", "category": "Labour"})
    assert r.status_code == 201
    assert r.json()["category_option"] == "Labour"

    r = auth_client.post("/critical-issues", json={
        "issue_description": "Monsoon flooding", "category": "Other", "custom_category": "Weather",
    })
    issue = r.json()
    assert issue["category"] == "Weather"
    assert issue["category_option"] == "Other"
    assert issue["custom_category"] == "Weather"

    assert auth_client.post("/critical-issues", json={"issue_description": "x"}).status_code == 422
    assert auth_client.post("/critical-issues", json={
        "issue_description": "x", "category": "Other", "custom_category": "  ",
    }).status_code == 422


def test_critical_issues_newest_first_five_per_page(auth_client):
    for i in range(7):
        auth_client.post("/critical-issues", json={"issue_description": f"Issue {i + 1}", "category": "General"})
    page = auth_client.get("/critical-issues").json()
    assert page["page_size"] == 5
    assert [i["issue_description"] for i in page["items"]][:2] == ["Issue 7", "Issue 6"]
    assert page["total_pages"] == 2
