import pytest
from fastapi.testclient import TestClient

from api.main import app

from .conftest import SMALL_TABLE_TEXT


@pytest.fixture
def client(monkeypatch, table_file):
    path = table_file(SMALL_TABLE_TEXT)
    monkeypatch.setenv("DENSITY_TABLE_SOURCE", str(path))
    monkeypatch.delenv("DENSITY_TOLERANCE", raising=False)
    monkeypatch.delenv("DENSITY_ENFORCE_RANGE", raising=False)
    return TestClient(app)


def _use_table(monkeypatch, table_file, text):
    monkeypatch.setenv("DENSITY_TABLE_SOURCE", str(table_file(text, name="other.csv")))


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["table_loaded"] is True
    assert (body["rows"], body["columns"]) == (2, 3)


def test_health_degraded_without_table(client, monkeypatch, tmp_path):
    monkeypatch.setenv("DENSITY_TABLE_SOURCE", str(tmp_path / "missing.csv"))
    body = client.get("/health").json()
    assert body["status"] == "degraded"
    assert body["detail"]["kind"] == "table_unavailable"


def test_table_summary(client):
    resp = client.get("/table")
    assert resp.status_code == 200
    body = resp.json()
    assert body["temperatures"] == [10.0, 20.0, 30.0]
    assert body["densities"] == [900.0, 950.0]
    assert "matrix" not in body


def test_table_matrix_encodes_non_numeric_as_null(client, monkeypatch, table_file):
    _use_table(monkeypatch, table_file, ",10,20\n900,abc,2")
    body = client.get("/table", params={"include_matrix": True}).json()
    assert body["matrix"] == [[None, 2.0]]
    assert body["non_numeric_cells"] == 1


def test_table_chart(client):
    spec = client.get("/table/chart").json()
    assert spec["mark"]["type"] == "rect"
    assert spec["encoding"]["x"]["field"] == "temperature"


def test_table_reload(client):
    resp = client.post("/table/reload")
    assert resp.status_code == 200
    assert resp.json()["rows"] == 2


def test_density(client):
    resp = client.post("/density", json={"temperature": 19, "density": "901"})
    assert resp.status_code == 200
    assert resp.json()["density_15c"] == 2.0


def test_density_invalid_input(client):
    resp = client.post("/density", json={"temperature": "warm", "density": 901})
    assert resp.status_code == 400
    body = resp.json()
    assert body["kind"] == "invalid_input"
    assert body["type"] == "InvalidInputError"


def test_density_range_policy(client, monkeypatch):
    monkeypatch.setenv("DENSITY_ENFORCE_RANGE", "1")
    resp = client.post("/density", json={"temperature": -500, "density": 901})
    assert resp.status_code == 422
    assert resp.json()["type"] == "OutOfRangeError"


def test_compare_boundary(client):
    ok = client.post("/compare", json={"dispatch_density_15c": 900.0, "receiving_density_15c": 902.5}).json()
    assert ok["verdict"] == "ACCEPTABLE"
    bad = client.post("/compare", json={"dispatch_density_15c": 900.0, "receiving_density_15c": 902.51}).json()
    assert bad["verdict"] == "UNACCEPTABLE"


def test_variation(client):
    resp = client.post(
        "/variation",
        json={"dispatch": {"temperature": 19, "density": 901}, "receiving": {"temperature": 29, "density": 948}},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["result"]["dispatch_density_15c"] == 2.0
    assert body["result"]["receiving_density_15c"] == 6.0
    assert body["result"]["absolute_difference"] == 4.0
    assert body["verdict"] == "UNACCEPTABLE"


def test_variation_tolerance_override(client):
    resp = client.post(
        "/variation",
        json={
            "dispatch": {"temperature": 19, "density": 901},
            "receiving": {"temperature": 29, "density": 948},
            "tolerance": 4.0,
        },
    )
    assert resp.json()["verdict"] == "ACCEPTABLE"


def test_variation_missing_reading_is_invalid_input(client):
    resp = client.post("/variation", json={"dispatch": {"temperature": 19, "density": 901}})
    assert resp.status_code == 400
    assert resp.json()["kind"] == "invalid_input"


def test_variation_table_unavailable(client, monkeypatch, tmp_path):
    monkeypatch.setenv("DENSITY_TABLE_SOURCE", str(tmp_path / "missing.csv"))
    resp = client.post(
        "/variation",
        json={"dispatch": {"temperature": 19, "density": 901}, "receiving": {"temperature": 29, "density": 948}},
    )
    assert resp.status_code == 503
    assert resp.json()["kind"] == "table_unavailable"


@pytest.mark.parametrize("text, error_type", [("", "EmptyAxisError"), (",10,20\n900,abc,2", "NonNumericCellError")])
def test_variation_lookup_failures(client, monkeypatch, table_file, text, error_type):
    _use_table(monkeypatch, table_file, text)
    resp = client.post(
        "/variation",
        json={"dispatch": {"temperature": 10, "density": 900}, "receiving": {"temperature": 20, "density": 900}},
    )
    assert resp.status_code == 422
    body = resp.json()
    assert body["kind"] == "out_of_range"
    assert body["type"] == error_type


def test_failure_kinds_are_distinguishable(client, monkeypatch, tmp_path):
    invalid = client.post("/density", json={"temperature": "x", "density": 1}).json()
    monkeypatch.setenv("DENSITY_ENFORCE_RANGE", "1")
    out_of_range = client.post("/density", json={"temperature": 1000, "density": 900}).json()
    monkeypatch.setenv("DENSITY_TABLE_SOURCE", str(tmp_path / "missing.csv"))
    unavailable = client.post("/density", json={"temperature": 20, "density": 900}).json()
    messages = {invalid["message"], out_of_range["message"], unavailable["message"]}
    assert len(messages) == 3


@pytest.mark.parametrize("value", ["abc", "nan", None, True])
def test_compare_invalid_density(client, value):
    resp = client.post("/compare", json={"dispatch_density_15c": value, "receiving_density_15c": 902.5})
    assert resp.status_code == 400
    body = resp.json()
    assert body["kind"] == "invalid_input"
    assert body["type"] == "InvalidInputError"


def test_compare_numeric_strings(client):
    body = client.post("/compare", json={"dispatch_density_15c": "900", "receiving_density_15c": "902.5"}).json()
    assert body["verdict"] == "ACCEPTABLE"


def test_bad_tolerance_is_invalid_input(client):
    resp = client.post(
        "/compare", json={"dispatch_density_15c": 900.0, "receiving_density_15c": 902.5, "tolerance": "wide"}
    )
    assert resp.status_code == 400
    assert resp.json()["kind"] == "invalid_input"


@pytest.mark.parametrize("payload", [{"temperature": True, "density": 901}, {"temperature": 19, "density": False}])
def test_density_rejects_booleans(client, payload):
    resp = client.post("/density", json=payload)
    assert resp.status_code == 400
    assert resp.json()["type"] == "InvalidInputError"


def test_variation_rejects_booleans(client):
    resp = client.post(
        "/variation",
        json={"dispatch": {"temperature": 19, "density": 901}, "receiving": {"temperature": True, "density": 948}},
    )
    assert resp.status_code == 400
    assert resp.json()["kind"] == "invalid_input"
