import csv
import os
from urllib.parse import parse_qs, urlparse

from app.core.config import Settings, settings
from app.core.errors import StoreUnavailable
from app.main import app
from app.routes.auth import get_auth_service
from app.services.auth_service import AuthService
from app.services.logger import HEADERS

SUBJECT_ID = "199001011234"


def _initiate(client, subject_id: str = SUBJECT_ID) -> str:
    resp = client.post("/auth/initiate", json={"subjectId": subject_id})
    assert resp.status_code == 200
    return resp.json()["orderRef"]


def _status(client, order_ref: str):
    return client.get("/auth/status", params={"orderRef": order_ref})


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


def test_initiate(client):
    resp = client.post("/auth/initiate", json={"subjectId": SUBJECT_ID})

    assert resp.status_code == 200
    data = resp.json()
    assert data["token"] == data["orderRef"]
    assert data["qrCodeUrl"].startswith(settings.QR_IMAGE_BASE_URL)
    assert "autostarttoken%3D" + data["token"] in data["qrCodeUrl"]


def test_initiate_accepts_personal_number_field(client):
    resp = client.post("/auth/initiate", json={"personalNumber": SUBJECT_ID})
    assert resp.status_code == 200


def test_initiate_rejects_malformed_subject(client):
    for subject_id in ["", "1234", "19900101123a", "1990010112345"]:
        resp = client.post("/auth/initiate", json={"subjectId": subject_id})
        assert resp.status_code == 400, subject_id
        assert "detail" in resp.json()


def test_initiate_rejects_missing_body(client):
    resp = client.post("/auth/initiate", json={})
    assert resp.status_code == 400


def test_full_flow(client, clock):
    order_ref = _initiate(client)

    resp = _status(client, order_ref)
    assert resp.status_code == 200
    assert resp.json() == {"status": "pending", "hintCode": None}

    clock.advance(11)
    assert _status(client, order_ref).json() == {"status": "userSign", "hintCode": "SKICKA"}

    clock.advance(10)
    assert _status(client, order_ref).json() == {"status": "complete", "hintCode": None}

    resp = client.post("/auth/cancel", json={"orderRef": order_ref})
    assert resp.status_code == 200
    assert resp.json() == {"cancelled": True}

    assert _status(client, order_ref).status_code == 404


def test_status_unknown_order(client):
    resp = _status(client, "never-issued")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Session not found"


def test_status_requires_order_ref(client):
    assert client.get("/auth/status").status_code == 400
    assert _status(client, "").status_code == 400


def test_cancel_unknown_order(client):
    resp = client.post("/auth/cancel", json={"orderRef": "never-issued"})
    assert resp.status_code == 404


def test_cancel_twice(client):
    order_ref = _initiate(client)

    assert client.post("/auth/cancel", json={"orderRef": order_ref}).status_code == 200
    assert client.post("/auth/cancel", json={"orderRef": order_ref}).status_code == 404


def test_token_exchange(client, clock):
    order_ref = _initiate(client)

    resp = client.post("/auth/token", json={"orderRef": order_ref})
    assert resp.status_code == 400

    clock.advance(21)
    _status(client, order_ref)

    resp = client.post("/auth/token", json={"orderRef": order_ref})
    assert resp.status_code == 200
    access_token = resp.json()["access_tkn"]

    resp = client.get("/auth/me", headers={"Authorization": f"Bearer {access_token}"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["order_ref"] == order_ref
    assert data["subject"] == "19900101****"


def test_token_exchange_unknown_order(client):
    assert client.post("/auth/token", json={"orderRef": "never-issued"}).status_code == 404


def test_me_rejects_bad_tokens(client):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_rate_limit(client, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
    monkeypatch.setattr(settings, "MAX_REQUESTS_PER_MINUTE", 2)

    _initiate(client)
    _initiate(client)

    resp = client.post("/auth/initiate", json={"subjectId": SUBJECT_ID})
    assert resp.status_code == 429


def test_store_unavailable_is_server_error(client, clock):
    class DownStore:
        def create(self, session):
            raise StoreUnavailable()

    app.dependency_overrides[get_auth_service] = lambda: AuthService(store=DownStore(), clock=clock)

    resp = client.post("/auth/initiate", json={"subjectId": SUBJECT_ID})
    assert resp.status_code == 503
    assert resp.json() == {"detail": "Session store unavailable."}


def test_audit_log(client, clock, tmp_path, monkeypatch):
    log_file = tmp_path / "audit.csv"
    monkeypatch.setattr(settings, "AUDIT_LOG_FILE", str(log_file))

    order_ref = _initiate(client)
    _status(client, order_ref)
    client.post("/auth/cancel", json={"orderRef": order_ref})
    _status(client, order_ref)

    with open(log_file, newline="") as f:
        rows = list(csv.reader(f))

    assert rows[0] == HEADERS
    events = [(row[1], row[2], row[3]) for row in rows[1:]]
    assert events == [
        ("initiate", order_ref, "ok"),
        ("status", order_ref, "pending"),
        ("cancel", order_ref, "ok"),
        ("status", order_ref, "not_found"),
    ]


def test_autostart_redirect_lands_on_callback_page(client):
    resp = client.post("/auth/initiate", json={"subjectId": SUBJECT_ID})
    data = resp.json()

    payload = parse_qs(urlparse(data["qrCodeUrl"]).query)["data"][0]
    link = parse_qs(urlparse(payload).query)
    assert link["autostarttoken"] == [data["orderRef"]]

    redirect = urlparse(link["redirect"][0])
    assert f"{redirect.scheme}://{redirect.netloc}" == settings.FRONTEND_URL.rstrip("/")

    resp = client.get(redirect.path, params={"autostarttoken": data["orderRef"]})
    assert resp.status_code == 200
    assert "get('autostarttoken')" in resp.text
    assert "/auth/status?orderRef=" in resp.text
    assert f"const pollInterval = {settings.POLL_INTERVAL_MS};" in resp.text


def test_default_redirect_targets_this_service():
    assert Settings.FRONTEND_URL == os.getenv("FRONTEND_URL", f"http://localhost:{Settings.PORT}")


def test_login_page(client):
    resp = client.get("/login")

    assert resp.status_code == 200
    assert "Log in with BankID" in resp.text
    assert f"const pollInterval = {settings.POLL_INTERVAL_MS};" in resp.text


def test_api_docs(client):
    assert client.get("/api-docs").status_code == 200
