from sqlalchemy import text


def test_health_endpoints(client):
    assert client.get("/api/health").json() == {"status": "ok"}

    live = client.get("/api/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"

    ready = client.get("/api/health/ready")
    assert ready.status_code == 200
    payload = ready.json()
    assert payload["status"] == "ok"
    assert payload["database"]["schema_ok"] is True
    assert payload["database"]["missing_tables"] == []


def test_ready_reports_missing_tables(client, engine):
    with engine.begin() as connection:
        connection.execute(text("DROP TABLE session_occurrences"))

    ready = client.get("/api/health/ready")
    assert ready.status_code == 503
    payload = ready.json()
    assert payload["status"] == "degraded"
    assert payload["database"]["missing_tables"] == ["session_occurrences"]


def test_responses_carry_a_request_id(client):
    response = client.get("/api/health", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"
    assert client.get("/api/health").headers["X-Request-ID"]


def test_oversized_bodies_are_refused(client):
    response = client.post(
        "/api/auth/login",
        content=b"{}",
        headers={"Content-Type": "application/json", "Content-Length": str(10_000_000)},
    )
    assert response.status_code == 413
    assert response.json()["message"] == "Request body too large"


def test_run_serves_the_app_with_configured_address(monkeypatch):
    from app import main

    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))

    main.run()

    assert calls == [("app.main:app", {"host": "127.0.0.1", "port": 8000, "log_config": None})]
