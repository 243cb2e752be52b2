"""Integration tests for the FastAPI endpoints.

Uses TestClient against an in-memory database with the default catalog seeded.
"""
from __future__ import annotations

import io
from unittest.mock import MagicMock

import openpyxl
import pytest
from fastapi.testclient import TestClient

from operatorfit.catalog import FORCED_CHOICE, SCENARIO, default_catalog


def all_answers() -> list[dict]:
    def value(q):
        if q.type == FORCED_CHOICE:
            return "A"
        if q.type == SCENARIO:
            return 1
        return 2 if q.is_trap else 4
    return [{"question_id": q.id, "value": value(q)} for q in default_catalog()]


@pytest.fixture()
def publisher():
    return MagicMock()


@pytest.fixture()
def client(session_factory, publisher, tmp_path, monkeypatch):
    """FastAPI TestClient using the in-memory database and a recording publisher."""
    monkeypatch.setenv("OPERATORFIT_DB", str(tmp_path / "lifespan.db"))
    from operatorfit.app import app, db_session, enrichment_publisher

    def override_db_session():
        session = session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[db_session] = override_db_session
    app.dependency_overrides[enrichment_publisher] = lambda: publisher
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def session_id(client) -> int:
    resp = client.post("/api/applicants", json={"name": "Ada Example", "email": "ada@example.com"})
    assert resp.status_code == 201
    resp = client.post("/api/sessions", json={"applicant_id": resp.json()["id"]})
    assert resp.status_code == 201
    return resp.json()["id"]


@pytest.fixture()
def ventures(client) -> list[int]:
    ids = []
    for body in (
        {"name": "Acme Logistics", "ideal_operator_type": "Operational Leader", "industry": "Logistics",
         "dimension_weights": {"execution": 1.0}, "suggested_roles": ["Operations Manager", "Growth Lead"]},
        {"name": "Pixel Forge", "ideal_operator_type": "Product Architect",
         "team_profile": {"workingStyle": "structured"}},
    ):
        resp = client.post("/api/ventures", json=body)
        assert resp.status_code == 201
        ids.append(resp.json()["id"])
    return ids


class TestAssessmentFlow:
    def test_list_questions(self, client):
        resp = client.get("/api/questions")
        assert resp.status_code == 200
        data = resp.json()
        assert len(data) == 70
        assert data[60]["type"] == "forcedChoice"
        assert data[60]["option_keys"] == ["A", "B"]
        assert data[65]["option_keys"] == ["1", "2", "3", "4"]

    def test_blank_applicant_rejected(self, client):
        assert client.post("/api/applicants", json={"name": "   "}).status_code == 422

    def test_session_for_unknown_applicant(self, client):
        assert client.post("/api/sessions", json={"applicant_id": 999}).status_code == 404

    def test_progress(self, client, session_id):
        resp = client.put(f"/api/sessions/{session_id}/responses", json={"responses": all_answers()[:20]})
        assert resp.status_code == 200
        assert resp.json() == {"session_id": session_id, "answered": 20}
        data = client.get(f"/api/sessions/{session_id}").json()
        assert data["status"] == "in_progress"
        assert data["answered"] == 20
        assert data["total"] == 70

    def test_invalid_response_value(self, client, session_id):
        resp = client.put(f"/api/sessions/{session_id}/responses",
                          json={"responses": [{"question_id": 1, "value": 9}]})
        assert resp.status_code == 422
        assert "Q1" in resp.json()["detail"]

    def test_submit_and_read_back(self, client, session_id, ventures, publisher):
        resp = client.post(f"/api/sessions/{session_id}/submit", json={"responses": all_answers()})
        assert resp.status_code == 200
        data = resp.json()
        assert data["already_completed"] is False
        assert data["result"]["primary_operator_type"] == "Operational Leader"
        assert data["result"]["confidence_level"] == "Strong"
        assert [m["venture_name"] for m in data["matches"]] == ["Acme Logistics", "Pixel Forge"]
        assert data["matches"][0]["rank"] == 1

        publisher.publish.assert_called_once()
        event = publisher.publish.call_args.args[0]
        assert event.result_id == data["result_id"]

        result_id = data["result_id"]
        assert client.get(f"/api/results/{result_id}").json()["session_id"] == session_id
        assert client.get(f"/api/sessions/{session_id}/result").json()["id"] == result_id
        matches = client.get(f"/api/results/{result_id}/matches").json()
        assert [m["rank"] for m in matches] == [1, 2]
        assert client.get(f"/api/sessions/{session_id}").json()["status"] == "completed"

    def test_resubmit_is_idempotent(self, client, session_id, publisher):
        first = client.post(f"/api/sessions/{session_id}/submit", json={"responses": all_answers()}).json()
        resp = client.post(f"/api/sessions/{session_id}/submit")
        assert resp.status_code == 200
        assert resp.json()["already_completed"] is True
        assert resp.json()["result_id"] == first["result_id"]
        assert publisher.publish.call_count == 1

    def test_incomplete_submit(self, client, session_id, publisher):
        resp = client.post(f"/api/sessions/{session_id}/submit", json={"responses": all_answers()[:68]})
        assert resp.status_code == 422
        assert "2 responses outstanding" in resp.json()["detail"]
        assert client.get(f"/api/sessions/{session_id}/result").status_code == 404
        publisher.publish.assert_not_called()

    def test_record_after_completion_conflicts(self, client, session_id):
        client.post(f"/api/sessions/{session_id}/submit", json={"responses": all_answers()})
        resp = client.put(f"/api/sessions/{session_id}/responses",
                          json={"responses": [{"question_id": 1, "value": 1}]})
        assert resp.status_code == 409

    def test_unknown_session(self, client):
        assert client.get("/api/sessions/999").status_code == 404
        assert client.post("/api/sessions/999/submit").status_code == 404
        assert client.get("/api/results/999").status_code == 404


class TestScorePreview:
    def test_preview(self, client, ventures):
        resp = client.post("/api/score", json={"applicant_name": "Grace", "responses": all_answers()})
        assert resp.status_code == 200
        data = resp.json()
        assert data["result"]["id"] is None
        assert data["result"]["summary"].startswith("Grace")
        assert len(data["matches"]) == 2
        assert client.get("/api/stats").json()["results"] == 0

    def test_preview_rejects_unknown_ids(self, client):
        resp = client.post("/api/score", json={"responses": [{"question_id": 500, "value": 3}]})
        assert resp.status_code == 422


class TestVentureEndpoints:
    def test_crud(self, client, ventures):
        acme, pixel = ventures
        resp = client.put(f"/api/ventures/{pixel}", json={"industry": "Design", "secondary_operator_type": ""})
        assert resp.status_code == 200
        assert resp.json()["industry"] == "Design"
        assert resp.json()["secondary_operator_type"] is None

        resp = client.delete(f"/api/ventures/{acme}")
        assert resp.status_code == 200
        assert resp.json()["is_active"] is False
        assert [v["name"] for v in client.get("/api/ventures").json()] == ["Pixel Forge"]
        assert len(client.get("/api/ventures", params={"include_inactive": True}).json()) == 2

    def test_duplicate_and_invalid(self, client, ventures):
        resp = client.post("/api/ventures", json={"name": "Acme Logistics", "ideal_operator_type": "Growth Catalyst"})
        assert resp.status_code == 409
        resp = client.post("/api/ventures", json={"name": "New", "ideal_operator_type": "Wizard"})
        assert resp.status_code == 422

    def test_update_404(self, client):
        assert client.put("/api/ventures/999", json={"industry": "X"}).status_code == 404

    def test_import_xlsx(self, client):
        wb = openpyxl.Workbook()
        ws = wb.active
        ws.append(["Name", "Industry", "Ideal Operator Type", "Weight Execution", "Suggested Roles"])
        ws.append(["Acme Logistics", "Logistics", "operational leader", 1.0, "Ops Lead; Growth Lead"])
        ws.append(["Broken", "", "", None, None])
        buf = io.BytesIO()
        wb.save(buf)

        resp = client.post(
            "/api/ventures/import",
            files={"file": ("ventures.xlsx", buf.getvalue(),
                            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")},
        )
        assert resp.status_code == 200
        assert resp.json() == {"created": 1, "updated": 0, "skipped": 1}
        venture = client.get("/api/ventures").json()[0]
        assert venture["ideal_operator_type"] == "Operational Leader"
        assert venture["suggested_roles"] == ["Ops Lead", "Growth Lead"]

    def test_import_rejects_other_formats(self, client):
        resp = client.post("/api/ventures/import", files={"file": ("ventures.csv", b"name\n", "text/csv")})
        assert resp.status_code == 400


class TestMatchesAndStats:
    def test_venture_changes_update_stored_matches(self, client, session_id, ventures):
        acme, pixel = ventures
        data = client.post(f"/api/sessions/{session_id}/submit", json={"responses": all_answers()}).json()
        url = f"/api/results/{data['result_id']}/matches"
        assert [m["venture_name"] for m in client.get(url).json()] == ["Acme Logistics", "Pixel Forge"]

        assert client.delete(f"/api/ventures/{acme}").status_code == 200
        matches = client.get(url).json()
        assert [m["venture_name"] for m in matches] == ["Pixel Forge"]
        assert matches[0]["rank"] == 1

        client.put(f"/api/ventures/{pixel}", json={"is_active": False})
        assert client.get(url).json() == []

    def test_rename_to_taken_name_conflicts(self, client, ventures):
        acme, pixel = ventures
        resp = client.put(f"/api/ventures/{pixel}", json={"name": "Acme Logistics"})
        assert resp.status_code == 409
        names = {v["id"]: v["name"] for v in client.get("/api/ventures").json()}
        assert names == {acme: "Acme Logistics", pixel: "Pixel Forge"}

    def test_import_ranks_existing_results(self, client, session_id):
        data = client.post(f"/api/sessions/{session_id}/submit", json={"responses": all_answers()}).json()
        wb = openpyxl.Workbook()
        wb.active.append(["Name", "Ideal Operator Type"])
        wb.active.append(["Acme Logistics", "Operational Leader"])
        buf = io.BytesIO()
        wb.save(buf)
        resp = client.post(
            "/api/ventures/import",
            files={"file": ("ventures.xlsx", buf.getvalue(),
                            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")},
        )
        assert resp.status_code == 200
        matches = client.get(f"/api/results/{data['result_id']}/matches").json()
        assert [m["venture_name"] for m in matches] == ["Acme Logistics"]

    def test_recompute_after_venture_change(self, client, session_id):
        data = client.post(f"/api/sessions/{session_id}/submit", json={"responses": all_answers()}).json()
        assert data["matches"] == []
        client.post("/api/ventures", json={"name": "Acme Logistics", "ideal_operator_type": "Operational Leader"})
        matches = client.get(f"/api/results/{data['result_id']}/matches").json()
        assert matches[0]["venture_name"] == "Acme Logistics"

        resp = client.post("/api/matches/recompute")
        assert resp.status_code == 200
        assert resp.json() == {"results": 1, "matches": 1, "ventures": 1}
        matches = client.get(f"/api/results/{data['result_id']}/matches").json()
        assert [m["venture_name"] for m in matches] == ["Acme Logistics"]

    def test_stats(self, client, session_id, ventures):
        client.post(f"/api/sessions/{session_id}/submit", json={"responses": all_answers()})
        stats = client.get("/api/stats").json()
        assert stats["sessions"] == 1
        assert stats["results"] == 1
        assert stats["active_ventures"] == 2
        assert stats["by_status"] == {"completed": 1}
