"""Tests for the application factory."""

from fastapi.testclient import TestClient


class TestCreateApp:
    def test_health(self):
        from portal.main import create_app

        client = TestClient(create_app())
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_request_id_echoed(self):
        from portal.main import create_app

        client = TestClient(create_app())
        response = client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert "X-Process-Time" in response.headers

    def test_challenge_routes_mounted(self):
        from portal.main import API_PREFIX, create_app

        paths = {route.path for route in create_app().routes}
        assert f"{API_PREFIX}/challenges/{{challenge_id}}/winners" in paths
        assert f"{API_PREFIX}/challenges/submissions/bulk" in paths
