import base64
from io import BytesIO

import qrcode


def build_qr_payload(prefix: str, user_id: int, event_id: int, timestamp_ms: int) -> str:
    """Opaque pass token; consumers only ever match it exactly."""
    return f"{prefix}:{user_id}:{event_id}:{timestamp_ms}"


def render_qr_data_uri(data: str) -> str:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    img.save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode()
    return f"data:image/png;base64,{encoded}"
