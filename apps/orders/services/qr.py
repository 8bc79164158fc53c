"""Pickup code rendering."""

import qrcode
from io import BytesIO


def render_pickup_qr(code: str, box_size: int = 10, border: int = 4) -> bytes:
    """
    Render a pickup code as a PNG QR code.

    Uses error correction level H (30% recovery).

    Returns:
        PNG image bytes
    """
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=box_size,
        border=border,
    )
    qr.add_data(code)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    output = BytesIO()
    img.save(output, format='PNG')
    return output.getvalue()
