import pytest
from fastapi.testclient import TestClient

import config
import crud
import main
from utils import today, utcnow

from conftest import NOW, PASSWORD, TODAY, make_employee


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'app.db'}")
    main.app.dependency_overrides[today] = lambda: TODAY
    main.app.dependency_overrides[utcnow] = lambda: NOW
    with TestClient(main.app) as client:
        store = main.app.state.store
        client.portal.call(crud.put_employee, store, make_employee("e1", name="Ana"))
        client.portal.call(crud.put_employee, store, make_employee("e2", name="Luis"))
        client.portal.call(crud.put_employee, store, make_employee("boss", name="Marta", is_admin=True))
        yield client
    main.app.dependency_overrides.clear()


def login(client, employee_id):
    response = client.post(
        "/login", data={"email": f"{employee_id}@example.com", "password": PASSWORD}, follow_redirects=False
    )
    assert response.status_code == 303
    assert response.headers["location"] == "/requests"


def test_root_and_health(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/").json()["version"] == "1.0.0"


def test_api_requires_session(client):
    response = client.get("/api/requests")
    assert response.status_code == 401
    assert response.json() == {"detail": "Not authenticated"}


def test_html_redirects_to_login(client):
    response = client.get("/requests", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/login"


def test_bad_login(client):
    response = client.post("/login", data={"email": "e1@example.com", "password": "Nope1234"})
    assert response.status_code == 401
    assert "Invalid email or password" in response.text


def test_me(client):
    login(client, "e1")
    body = client.get("/api/me").json()
    assert body["id"] == "e1"
    assert body["tenure_years"] == 5
    assert body["available_days"] == 20
    assert "password_hash" not in body


def test_create_request_for_self(client):
    login(client, "e1")
    response = client.post("/api/requests", json={"start_date": "2024-01-01", "end_date": "2024-01-07"})
    assert response.status_code == 201
    body = response.json()
    assert body["employee_id"] == "e1"
    assert body["employee_name"] == "Ana"
    assert body["requested_days"] == 5
    assert body["status"] == "pending"


def test_create_request_validation(client):
    login(client, "e1")
    response = client.post("/api/requests", json={"start_date": "2025-03-07", "end_date": "2025-03-03"})
    assert response.status_code == 400
    response = client.post("/api/requests", json={"start_date": "03/03/2025", "end_date": "2025-03-07"})
    assert response.status_code == 400


def test_regular_user_cannot_file_for_others(client):
    login(client, "e1")
    response = client.post(
        "/api/requests", json={"employee_id": "e2", "start_date": "2025-03-03", "end_date": "2025-03-07"}
    )
    assert response.status_code == 403


def test_admin_files_on_behalf(client):
    login(client, "boss")
    response = client.post(
        "/api/requests", json={"employee_id": "e2", "start_date": "2025-03-03", "end_date": "2025-03-07"}
    )
    assert response.status_code == 201
    assert response.json()["employee_name"] == "Luis"

    response = client.post(
        "/api/requests", json={"employee_id": "ghost", "start_date": "2025-03-03", "end_date": "2025-03-07"}
    )
    assert response.status_code == 404


def test_only_admin_decides(client):
    login(client, "e1")
    created = client.post("/api/requests", json={"start_date": "2025-03-03", "end_date": "2025-03-07"}).json()
    url = f"/api/requests/e1/{created['id']}/approve"
    assert client.post(url).status_code == 403

    client.post("/logout")
    login(client, "boss")
    for _ in range(2):
        response = client.post(url)
        assert response.status_code == 200
        assert response.json()["status"] == "approved"

    assert client.get("/api/employees/e1").json()["consumed_days"] == 5


def test_status_endpoint_validates(client):
    login(client, "boss")
    created = client.post(
        "/api/requests", json={"employee_id": "e1", "start_date": "2025-03-03", "end_date": "2025-03-07"}
    ).json()
    url = f"/api/requests/e1/{created['id']}/status"
    assert client.put(url, json={"status": "maybe"}).status_code == 400
    assert client.put(url, json={"status": "rejected"}).json()["status"] == "rejected"
    assert client.put("/api/requests/e1/nope/status", json={"status": "rejected"}).status_code == 404


def test_listing_filter(client):
    login(client, "boss")
    ids = []
    for employee_id in ("e1", "e2", "boss"):
        body = client.post(
            "/api/requests", json={"employee_id": employee_id, "start_date": "2025-03-03", "end_date": "2025-03-04"}
        ).json()
        ids.append((employee_id, body["id"]))
    client.post(f"/api/requests/{ids[0][0]}/{ids[0][1]}/approve")

    everything = client.get("/api/requests").json()
    assert everything["counts"] == {"total": 3, "pending": 2, "approved": 1, "rejected": 0}

    pending = client.get("/api/requests", params={"status": "pendiente"}).json()
    assert pending["status_filter"] == "pending"
    assert pending["counts"] == {"total": 2, "pending": 2, "approved": 0, "rejected": 0}
    assert all(r["status"] == "pending" for r in pending["requests"])

    assert client.get("/api/requests", params={"status": "bogus"}).status_code == 400


def test_logout_ends_session(client):
    login(client, "e1")
    assert client.get("/api/me").status_code == 200
    response = client.post("/logout", follow_redirects=False)
    assert response.headers["location"] == "/login"
    assert client.get("/api/me").status_code == 401


def test_html_pages_render(client):
    login(client, "boss")
    client.post("/requests/new", data={"employee_id": "e1", "start_date": "2025-03-03", "end_date": "2025-03-07"})

    page = client.get("/requests")
    assert page.status_code == 200
    assert "Ana" in page.text
    assert "Approve" in page.text

    assert "Luis" in client.get("/employees").text
    detail = client.get("/employees/e1")
    assert detail.status_code == 200
    assert "2025-03-03" in detail.text
    assert client.get("/requests/new?employee_id=e2").status_code == 200
    assert client.get("/employees/ghost").status_code == 404


def test_html_form_shows_validation_error(client):
    login(client, "e1")
    response = client.post("/requests/new", data={"start_date": "2025-03-07", "end_date": "2025-03-03"})
    assert response.status_code == 400
    assert "end_date must not be before start_date" in response.text


def test_html_approve_requires_admin(client):
    login(client, "e1")
    created = client.post("/api/requests", json={"start_date": "2025-03-03", "end_date": "2025-03-07"}).json()
    response = client.post(f"/requests/e1/{created['id']}/approve", follow_redirects=False)
    assert response.status_code == 403


def test_change_password(client):
    login(client, "e1")
    bad = client.post("/change-password", data={"old_password": PASSWORD, "new_password": "short"})
    assert bad.status_code == 400
    wrong = client.post("/change-password", data={"old_password": "Wrong123", "new_password": "Better123"})
    assert wrong.status_code == 400

    response = client.post(
        "/change-password", data={"old_password": PASSWORD, "new_password": "Better123"}, follow_redirects=False
    )
    assert response.status_code == 303
    client.post("/logout")
    ok = client.post(
        "/login", data={"email": "e1@example.com", "password": "Better123"}, follow_redirects=False
    )
    assert ok.status_code == 303


def test_login_page_redirects_when_logged_in(client):
    assert client.get("/login").status_code == 200
    login(client, "e1")
    response = client.get("/login", follow_redirects=False)
    assert response.status_code == 303
