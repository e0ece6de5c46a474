"""
Integration tests for the analysis API.
"""
import json

from fastapi.testclient import TestClient

from repriseval.config import Settings


class TestAnalysisEndpoint:
    """Tests for POST /api/v1/analysis."""

    def test_full_analysis(self, client: TestClient, analysis_payload):
        response = client.post("/api/v1/analysis", json=analysis_payload)

        assert response.status_code == 200
        data = response.json()
        assert data["as_of_year"] == 2024
        assert sorted(data["indicators"]) == ["2021", "2022", "2023"]
        assert data["indicators"]["2023"]["indicators"]["ebe"]["value"] == 66000
        assert data["health"]["overall"] == 97
        assert data["alerts"]["summary"]["total"] == 0
        assert data["quality"]["confidence"]["overall"] == 94
        assert data["error"] is None

    def test_excessive_rent(self, client: TestClient, analysis_payload):
        analysis_payload["real_estate"] = {"monthly_rent": 15000, "lease_present": True}

        data = client.post("/api/v1/analysis", json=analysis_payload).json()
        alerts = {alert["rule_id"]: alert for alert in data["alerts"]["alerts"]}

        assert alerts["IMMO_001"]["severity"] == "critical"
        assert "40.0%" in alerts["IMMO_001"]["message"]
        assert data["alerts"]["vigilance_points"][0].startswith(alerts["IMMO_001"]["title"])

    def test_malformed_payload(self, client: TestClient, analysis_payload):
        """A malformed context is rejected as a whole with one error envelope."""
        analysis_payload["records"][0]["confidence"] = 1.5

        response = client.post("/api/v1/analysis", json=analysis_payload)

        assert response.status_code == 422
        data = response.json()
        assert data["error"] is True
        assert data["error_code"] == "RPV-100"
        assert data["details"]["errors"]

    def test_non_finite_figure(self, client: TestClient, analysis_payload):
        """JSON Infinity is a malformed context, not a server error."""
        analysis_payload["records"][0]["figures"]["revenue"] = float("inf")

        response = client.post(
            "/api/v1/analysis",
            content=json.dumps(analysis_payload),
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 422
        data = response.json()
        assert data["error_code"] == "RPV-100"
        assert data["details"]["errors"][0]["loc"][-1] == "revenue"

    def test_default_as_of_year(self, client: TestClient, analysis_payload, monkeypatch):
        monkeypatch.setattr(
            "repriseval.api.routes.analysis.get_settings",
            lambda: Settings(_env_file=None, default_as_of_year=2030),
        )
        del analysis_payload["as_of_year"]

        data = client.post("/api/v1/analysis", json=analysis_payload).json()

        assert data["as_of_year"] == 2030
        alerts = {alert["rule_id"] for alert in data["alerts"]["alerts"]}
        assert "DATA_004" in alerts


class TestBenchmarkEndpoint:
    """Tests for GET /api/v1/benchmarks/{sector_code}."""

    def test_known_sector(self, client: TestClient):
        response = client.get("/api/v1/benchmarks/56.10")

        assert response.status_code == 200
        data = response.json()
        assert data["matched"] is True
        assert data["ratios"]["ebe_margin_pct"] == 12

    def test_unknown_sector_defaults(self, client: TestClient):
        data = client.get("/api/v1/benchmarks/99.99").json()

        assert data["matched"] is False
        assert data["code"] == "DEFAULT"

    def test_unknown_sector_strict(self, client: TestClient):
        response = client.get("/api/v1/benchmarks/99.99", params={"strict": "true"})

        assert response.status_code == 404
        assert response.json()["error_code"] == "RPV-200"


class TestAlertRulesEndpoint:
    def test_lists_table(self, client: TestClient):
        response = client.get("/api/v1/alert-rules")

        assert response.status_code == 200
        rules = response.json()
        assert len(rules) == 33
        assert rules[0]["id"] == "RENT_001"
        assert rules[0]["conditions"] == [["ebe_evolution_pct", "<", -30]]
