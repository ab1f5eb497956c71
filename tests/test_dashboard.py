from sitetrack.routes.dashboard import current_year


def _seed(client):
    client.post("/concrete/entries", json={"year": 2025, "month": 1, "week": 1, "tower": "T1", "planned": 1500.4, "actual": 1200.6})
    client.post("/concrete/entries", json={"year": 2025, "month": 3, "week": 1, "tower": "T2", "planned": 700.0})
    client.post("/concrete/entries", json={"year": 2024, "month": 12, "week": 4, "tower": "T1", "actual": 300.0})
    for week, planned in [(1, 100.0), (2, 104.0)]:
        client.post("/manpower/entries", json={"year": 2025, "month": 2, "week": week, "tower": "T1", "planned": planned})
    client.post("/cashflow/entries", json={"year": 2025, "month": 2, "planned": 4.5, "actual": 3.9})
    client.post("/tower-finish-dates", json={"tower": "T1", "planned_finish": "2026-01-01", "projected_finish": "2026-01-20"})
    client.post("/non-negotiables", json={"tower": "T1", "task_description": "Pending task"})
    done = client.post("/non-negotiables", json={"tower": "T2", "task_description": "Done task"}).json()
    client.post(f"/non-negotiables/{done['id']}/toggle")
    client.post("/steel-stock", json={"dia": "10mm", "total_received": 12, "stock_at_site": 2, "consumed": 10})
    client.post("/critical-issues", json={"issue_description": "Pump breakdown", "category": "Technical"})


def test_dashboard_payload(auth_client):
    _seed(auth_client)
    data = auth_client.get("/dashboard", params={"year": 2025}).json()

    assert data["year"] == 2025
    t1 = next(p for p in data["progress"] if p["tower"] == "T1")
    # all years count toward physical progress: (1200.6 + 300) / 15000
    assert t1["actual"] == 10.0

    assert [m["month"] for m in data["concrete"]] == [1, 3]
    assert data["concrete"][0] == {"month": 1, "month_name": "Jan", "planned": 1500, "actual": 1201}

    assert data["manpower"][1]["planned"] == 102
    assert data["manpower"][0]["planned"] == 0

    assert [m["month"] for m in data["cashflow"]] == [2]
    assert data["cashflow"][0]["cumulative_actual"] == 3.9

    assert data["tower_finish_dates"][0]["variance_class"] == "behind"
    assert [t["task_description"] for t in data["pending_non_negotiables"]] == ["Pending task"]
    assert data["steel_stock"]["totals"]["consumed"] == 10
    assert data["critical_issues"][0]["category_option"] == "Technical"


def test_dashboard_defaults_to_current_year(auth_client, settings):
    data = auth_client.get("/dashboard").json()
    assert data["year"] == current_year(settings.tz_default)
    assert data["concrete"] == []
    assert len(data["manpower"]) == 12
