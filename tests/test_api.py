"""
HTTP surface: calculators, panels, exports, preferences, regions.
"""


def _calculate_slab(client):
    client.patch("/api/calculators/concrete/panel", json={
        "values": {"length": "20", "width": "10", "thickness": "4"},
    })
    return client.post("/api/calculators/concrete/panel/calculate")


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_list_and_describe_calculators(client):
    response = client.get("/api/calculators/")
    assert response.status_code == 200
    keys = [c["key"] for c in response.json()]
    assert keys == ["concrete", "framing", "paint", "roofing"]

    schema = client.get("/api/calculators/concrete").json()
    assert schema["title"] == "Concrete Slab"
    assert schema["required"] == ["length", "width", "thickness"]
    assert schema["fields"]["thickness"]["min"] == 2

    assert client.get("/api/calculators/hvac").status_code == 404


def test_panel_field_errors(client):
    response = client.patch("/api/calculators/concrete/panel", json={"values": {"thickness": "1"}})
    assert response.status_code == 200
    view = response.json()
    assert view["field_errors"] == {"thickness": "Thickness must be between 2 and 48"}
    assert view["calculate_disabled"] is True

    bad = client.patch("/api/calculators/concrete/panel", json={"values": {"colour": "red"}})
    assert bad.status_code == 422


def test_blocked_calculate_returns_summary(client):
    view = client.post("/api/calculators/concrete/panel/calculate").json()
    assert view["state"] == "invalid"
    assert "Length: Length is required" in view["error_summary"]
    assert client.get("/api/exports/concrete/csv").status_code == 404
    assert client.get("/api/exports/latest/pdf").status_code == 404


def test_calculate_and_export(client):
    view = _calculate_slab(client).json()
    assert view["state"] == "computed"
    assert view["results"]["total"] == 432.10
    assert view["exports_enabled"] is True

    csv_response = client.get("/api/exports/concrete/csv")
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    assert "attachment" in csv_response.headers["content-disposition"]
    assert csv_response.text.startswith("Concrete Slab Results")

    pdf_response = client.get("/api/exports/latest/pdf")
    assert pdf_response.status_code == 200
    assert pdf_response.content.startswith(b"%PDF")

    page = client.get("/api/exports/concrete/print")
    assert "window.print()" in page.text

    copy = client.get("/api/exports/latest/copy").json()
    assert copy["manual"] is True
    assert "Total: $432.10" in copy["text"]

    assert client.get("/api/exports/unknown/csv").status_code == 404


def test_reset_panel(client):
    _calculate_slab(client)
    view = client.post("/api/calculators/concrete/panel/reset").json()
    assert view["state"] == "idle"
    assert view["results"] is None
    assert client.get("/api/exports/concrete/csv").status_code == 404


def test_region_change_updates_preferences(client):
    view = client.put("/api/calculators/concrete/panel/region", json={"region": "ny"}).json()
    assert view["region"] == "ny"
    assert view["pricing"]["multiplier"] == 1.22
    assert client.get("/api/preferences").json()["region"] == "ny"

    view = _calculate_slab(client).json()
    assert view["results"]["regional_multiplier"] == 1.22


def test_preferences(client):
    assert client.get("/api/preferences").json() == {"units": "imperial", "region": "national"}
    updated = client.put("/api/preferences", json={"units": "metric", "region": "Atlantis"}).json()
    assert updated == {"units": "metric", "region": "national"}
    assert client.put("/api/preferences", json={"units": "cubits"}).status_code == 422


def test_history(client):
    _calculate_slab(client)
    history = client.get("/api/history/concrete").json()
    assert len(history) == 1
    assert history[0]["results"]["total"] == 432.10
    assert client.delete("/api/history/concrete").status_code == 200
    assert client.get("/api/history/concrete").json() == []
    assert client.get("/api/history/hvac").status_code == 404


def test_regions(client):
    regions = client.get("/api/regions").json()
    codes = [r["code"] for r in regions]
    assert "national" in codes
    assert "west-coast" in codes
