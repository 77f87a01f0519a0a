import base64
from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_M


def render_qr_png(data: str, box_size: int = 10, border: int = 4) -> bytes:
    qr = qrcode.QRCode(box_size=box_size, border=border, error_correction=ERROR_CORRECT_M)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = BytesIO()
    img.save(buf)
    return buf.getvalue()


def short_url_qr_base64(short_url: str) -> str:
    """Base64-encoded PNG of a QR code pointing at ``short_url``."""
    return base64.b64encode(render_qr_png(short_url)).decode()
