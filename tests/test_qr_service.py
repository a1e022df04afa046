import base64
from urllib.parse import parse_qs, unquote, urlparse

import pytest

from app.core.config import settings
from app.core.errors import InvalidInput
from app.services.qr_service import QRService


def test_payload_is_autostart_link():
    payload = QRService.build_payload("abc-123", "http://localhost:3000/callback")

    assert payload.startswith("bankid:///?autostarttoken=abc-123&redirect=")
    assert unquote(payload.split("redirect=")[1]) == "http://localhost:3000/callback"


def test_payload_defaults_to_frontend_callback(monkeypatch):
    monkeypatch.setattr(settings, "FRONTEND_URL", "https://front.example/")

    payload = QRService.build_payload("abc-123")

    assert unquote(payload.split("redirect=")[1]) == "https://front.example/callback"


def test_payload_differs_per_token():
    assert QRService.build_payload("a") != QRService.build_payload("b")
    assert QRService.build_payload("a") == QRService.build_payload("a")


@pytest.mark.parametrize("token", ["", "  "])
def test_payload_requires_token(token):
    with pytest.raises(InvalidInput):
        QRService.build_payload(token)


def test_remote_image_url():
    payload = QRService.build_payload("abc-123")

    url = QRService.image_url(payload)

    parsed = urlparse(url)
    assert parsed.netloc == "api.qrserver.com"
    query = parse_qs(parsed.query)
    assert query["size"] == ["300x300"]
    assert query["data"] == [payload]


def test_inline_image_url(monkeypatch):
    monkeypatch.setattr(settings, "QR_RENDER_INLINE", True)

    url = QRService.image_url(QRService.build_payload("abc-123"))

    prefix = "data:image/png;base64,"
    assert url.startswith(prefix)
    assert base64.b64decode(url[len(prefix):]).startswith(b"\x89PNG")
