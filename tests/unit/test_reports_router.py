"""Report endpoint tests."""


def test_analyze_endpoint(client, upload_workbook, september_rows):
    upload_workbook(2026, {"September": september_rows})

    response = client.post("/api/reports/analyze", params={"year": 2026, "month": 9})

    assert response.status_code == 200
    data = response.json()
    assert data["stage"] == "analyze"
    assert data["status"] == "stage_one_complete"
    assert data["period"] == "September 2026"
    assert data["total_sessions"] == 5


def test_analyze_requires_year_and_month_together(client):
    response = client.post("/api/reports/analyze", params={"year": 2026})

    assert response.status_code == 400


def test_analyze_missing_data(client):
    response = client.post("/api/reports/analyze", params={"year": 2026, "month": 9})

    assert response.status_code == 404
    assert "Chat Logs 2026.xlsx" in response.json()["detail"]


def test_analyze_bad_columns(client, upload_workbook):
    upload_workbook(2026, {"September": [["id", "when"]]})

    response = client.post("/api/reports/analyze", params={"year": 2026, "month": 9})

    assert response.status_code == 422


def test_generate_without_state(client, firestore):
    firestore.properties["GEMINI_API_KEY"] = "test-key"

    response = client.post("/api/reports/generate")

    assert response.status_code == 409


def test_generate_after_analyze(client, upload_workbook, september_rows, firestore, report_storage):
    upload_workbook(2026, {"September": september_rows})
    firestore.properties["GEMINI_API_KEY"] = "test-key"
    client.post("/api/reports/analyze", params={"year": 2026, "month": 9})

    response = client.post("/api/reports/generate")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "done"
    assert data["locations"] == ["gs://test-bucket/Reports/Monthly Report - September 2026.docx"]


def test_generate_bad_narrative(client, upload_workbook, september_rows, firestore, report_storage, gemini):
    upload_workbook(2026, {"September": september_rows})
    firestore.properties["GEMINI_API_KEY"] = "test-key"
    client.post("/api/reports/analyze", params={"year": 2026, "month": 9})
    gemini.response = "no marker here"

    response = client.post("/api/reports/generate")

    assert response.status_code == 502


def test_state_endpoint(client, upload_workbook, september_rows):
    assert client.get("/api/reports/state").status_code == 409

    upload_workbook(2026, {"September": september_rows})
    client.post("/api/reports/analyze", params={"year": 2026, "month": 9})

    response = client.get("/api/reports/state")

    assert response.status_code == 200
    data = response.json()
    assert data["metrics"]["total_questions"] == 8
    assert data["reference"] == {"year": 2026, "month": 8}


def test_status_reflects_last_stage(client, upload_workbook, september_rows):
    assert client.get("/api/reports/status").json() == {"status": "idle"}

    client.post("/api/reports/analyze", params={"year": 2026, "month": 9})
    assert client.get("/api/reports/status").json() == {"status": "failed"}

    upload_workbook(2026, {"September": september_rows})
    client.post("/api/reports/analyze", params={"year": 2026, "month": 9})
    assert client.get("/api/reports/status").json() == {"status": "stage_one_complete"}


def test_generate_echoed_placeholder(client, upload_workbook, september_rows, firestore, report_storage, gemini):
    upload_workbook(2026, {"September": september_rows})
    firestore.properties["GEMINI_API_KEY"] = "test-key"
    client.post("/api/reports/analyze", params={"year": 2026, "month": 9})
    gemini.response = "[[SUMMARY]]\n{{NARRATIVE}}\n[[END]]"

    response = client.post("/api/reports/generate")

    assert response.status_code == 502
