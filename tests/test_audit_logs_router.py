"""
Tests for the audit log router.
"""
from fastapi.testclient import TestClient


class TestAuditLogsRouter:
    """Tests for GET /api/audit-logs."""

    def test_lists_recorded_actions(self, client: TestClient):
        upload_id = client.post(
            "/api/csv-import/upload",
            files={"file": ("a.csv", b"a\n1\n", "text/csv")},
        ).json()["upload_id"]
        client.get(f"/api/csv-import/history/{upload_id}/export")

        body = client.get("/api/audit-logs").json()

        assert body["total"] == 2
        assert {entry["action"] for entry in body["logs"]} == {"upload", "export"}
        assert all(entry["upload_id"] == upload_id for entry in body["logs"])

    def test_filter_by_action(self, client: TestClient):
        client.post("/api/csv-import/upload", files={"file": ("a.csv", b"a\n1\n", "text/csv")})
        client.post("/api/csv-import/preview", files={"file": ("a.csv", b"a\n1\n", "text/csv")})

        body = client.get("/api/audit-logs", params={"action": "preview"}).json()

        assert body["total"] == 1
        assert body["logs"][0]["action"] == "preview"
        assert body["logs"][0]["upload_id"] is None

    def test_invalid_action(self, client: TestClient):
        assert client.get("/api/audit-logs", params={"action": "nope"}).status_code == 422
