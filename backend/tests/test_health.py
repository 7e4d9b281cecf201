from fastapi.testclient import TestClient

from fieldsales.services import health as health_service


def test_health_checks_report_database(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr(health_service, "check_redis", lambda: True)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": True, "redis": True}


def test_health_degraded_without_redis(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr(health_service, "check_redis", lambda: False)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "degraded", "database": True, "redis": False}


def test_openapi_lists_report_routes(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()

    assert schema["info"]["title"] == "fieldsales-analytics-api"
    assert {
        "/api/analytics/manager",
        "/api/analytics/director",
        "/api/analytics/commercial",
        "/api/plans/achievement",
        "/health",
    } <= set(schema["paths"])
