import base64
import io
from urllib.parse import quote

import qrcode

from app.core.config import settings
from app.core.errors import InvalidInput


class QRService:
    @staticmethod
    def build_payload(token: str, callback_url: str | None = None) -> str:
        """
        Builds the autostart deep link encoded in the QR code.
        The redirect points back at the frontend callback page.
        """
        if not token or not token.strip():
            raise InvalidInput("Cannot build a QR payload without a token")

        callback = callback_url or f"{settings.FRONTEND_URL.rstrip('/')}/callback"
        return f"bankid:///?autostarttoken={token}&redirect={quote(callback, safe='')}"

    @staticmethod
    def image_url(payload: str) -> str:
        """
        Returns the URL the browser loads the QR image from: the remote
        render service by default, or an inline PNG data URL.
        """
        if settings.QR_RENDER_INLINE:
            return f"data:image/png;base64,{QRService.create_qr_image(payload)}"
        return f"{settings.QR_IMAGE_BASE_URL}?size=300x300&data={quote(payload, safe='')}"

    @staticmethod
    def create_qr_image(data_str: str) -> str:
        """
        Creates a QR code image and returns it as a base64 string
        """
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=4,
        )
        qr.add_data(data_str)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        return base64.b64encode(buffered.getvalue()).decode()
