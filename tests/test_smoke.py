from fastapi.testclient import TestClient

from sheetcheck.main import app
from sheetcheck.settings import settings

client = TestClient(app)

CLIENTS_CSV = (
    "ClientID,ClientName,PriorityLevel,RequestedTaskIDs,GroupTag,AttributesJSON,\n"
    "C001,Acme,3,T001,G1,vip customer,\n"
    "C002,Beta,6,T009,G2,plain note,\n"
)

TASKS_CSV = (
    "TaskID,TaskName,Category,Duration,RequiredSkills,PreferredPhases,MaxConcurrent\n"
    "T001,Build,Dev,1,coding,1-2,1\n"
)


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_validate_json_sheets():
    body = {
        "sheets": {
            "Clients": [
                {"ClientID": "C001", "ClientName": "Acme", "PriorityLevel": 3, "RequestedTaskIDs": "T001",
                 "GroupTag": "G1", "AttributesJSON": "vip customer"},
                {"ClientID": "C001", "ClientName": "Acme again", "PriorityLevel": 2, "RequestedTaskIDs": "",
                 "GroupTag": "G1", "AttributesJSON": "{}"},
            ],
        }
    }
    r = client.post("/validate", json=body)
    assert r.status_code == 200

    data = r.json()
    assert data["isValid"] is False
    assert len(data["errors"]) == 1
    assert data["errors"][0]["rowIndex"] == 1
    assert data["errors"][0]["column"] == "ClientID"
    # Repaired note comes back so the caller can keep it
    assert data["sheets"]["Clients"][0]["AttributesJSON"] == '{"message":"vip customer"}'


def test_validate_csv_uploads():
    files = [
        ("files", ("Clients.csv", CLIENTS_CSV.encode("utf-8"), "text/csv")),
        ("files", ("Tasks.csv", TASKS_CSV.encode("utf-8"), "text/csv")),
    ]
    r = client.post("/validate/csv", files=files)
    assert r.status_code == 200

    data = r.json()
    assert data["isValid"] is False
    found = {(e["sheetName"], e["rowIndex"], e["column"]) for e in data["errors"]}
    assert found == {("Clients", 1, "PriorityLevel"), ("Clients", 1, "RequestedTaskIDs")}

    assert data["sheets"]["Tasks"][0]["PreferredPhases"] == "[1,2]"
    assert data["sheets"]["Clients"][1]["AttributesJSON"] == '{"message":"plain note"}'
    assert data["ingest"][0]["sheetName"] == "Clients"
    assert data["ingest"][0]["droppedColumns"] == [""]


def test_rejects_non_csv_upload():
    files = {"files": ("clients.xlsx", b"PK\x03\x04", "application/octet-stream")}
    r = client.post("/validate/csv", files=files)
    assert r.status_code == 422


def test_rejects_oversize_upload(monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 10)
    files = {"files": ("Clients.csv", CLIENTS_CSV.encode("utf-8"), "text/csv")}
    r = client.post("/validate/csv", files=files)
    assert r.status_code == 413


def test_validate_expands_phase_ranges():
    body = {
        "sheets": {
            "Tasks": [
                {"TaskID": "T001", "TaskName": "Build", "Category": "Dev", "Duration": 1,
                 "RequiredSkills": "", "PreferredPhases": "1-3", "MaxConcurrent": 0},
            ],
        }
    }
    r = client.post("/validate", json=body)
    assert r.status_code == 200
    assert r.json()["sheets"]["Tasks"][0]["PreferredPhases"] == "[1,2,3]"


def test_edit_cell_and_revalidate():
    body = {
        "sheets": {
            "Clients": [
                {"ClientID": "C001", "ClientName": "Acme", "PriorityLevel": 9, "RequestedTaskIDs": "",
                 "GroupTag": "G1", "AttributesJSON": "{}"},
            ],
        },
        "sheetName": "Clients",
        "rowIndex": 0,
        "column": "PriorityLevel",
        "value": "4",
    }
    r = client.post("/edit", json=body)
    assert r.status_code == 200

    data = r.json()
    assert data["isValid"] is True
    assert data["sheets"]["Clients"][0]["PriorityLevel"] == 4

    body["column"] = "AttributesJSON"
    body["value"] = "prefers mornings"
    data = client.post("/edit", json=body).json()
    assert data["sheets"]["Clients"][0]["AttributesJSON"] == '{"message":"prefers mornings"}'


def test_edit_unknown_row():
    body = {"sheets": {"Clients": []}, "sheetName": "Clients", "rowIndex": 0, "column": "ClientID", "value": "C1"}
    r = client.post("/edit", json=body)
    assert r.status_code == 404
