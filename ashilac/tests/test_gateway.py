def test_ping(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.get_json()["status"] == "gateway_ok"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_api_routes_registered(app):
    rules = {rule.rule for rule in app.url_map.iter_rules()}

    assert "/api/auth/register" in rules
    assert "/api/auth/login" in rules
    assert "/api/events" in rules
    assert "/api/events/<int:event_id>/reservations" in rules
    assert "/api/formations" in rules
    assert "/api/formations/<int:formation_id>/register" in rules
    assert "/api/dashboard/stats" in rules


def test_cors_headers(client, mock_db):
    mock_conn, mock_cursor = mock_db("ashilac.events_service.routes")
    mock_cursor.fetchall.return_value = []

    response = client.get("/api/events", headers={"Origin": "http://localhost:5173"})
    assert response.headers.get("Access-Control-Allow-Origin") in ("*", "http://localhost:5173")


def test_unknown_route(client):
    assert client.get("/api/unknown").status_code == 404
