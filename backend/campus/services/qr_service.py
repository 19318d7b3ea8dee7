# backend/campus/services/qr_service.py
"""QR code payload encoding, decoding and rendering."""
import base64
import io
import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

import qrcode
from PIL import Image

from campus.utils.errors import AppError, BAD_REQUEST

QR_KINDS = ('kelas', 'kampus', 'gate')
QR_IMAGE_SIZE = 256


class MalformedPayload(AppError):
    """Raised when scanned text is not a valid QR payload."""
    code = BAD_REQUEST


@dataclass(frozen=True)
class QRPayload:
    """The four fields carried inside every QR image."""
    session_id: str
    schedule_id: str
    expires_at: datetime
    kind: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data['expires_at'] = format_rfc3339(self.expires_at)
        return data


def format_rfc3339(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=0).isoformat() + 'Z'


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC3339 timestamp into a naive UTC datetime."""
    if value.endswith('Z') or value.endswith('z'):
        value = value[:-1] + '+00:00'
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class QRService:
    """Stateless QR codec."""

    @staticmethod
    def encode(payload: QRPayload) -> str:
        """Serialize the payload to the compact JSON embedded in the image."""
        return json.dumps(payload.to_dict(), separators=(',', ':'))

    @staticmethod
    def decode(qr_data_string: str) -> QRPayload:
        """Parse scanned QR text back into a payload."""
        try:
            data = json.loads(qr_data_string)
        except (TypeError, ValueError):
            raise MalformedPayload("Invalid QR code format")

        if not isinstance(data, dict):
            raise MalformedPayload("Invalid QR code format")

        for field in ('session_id', 'schedule_id', 'expires_at', 'kind'):
            if field not in data or not isinstance(data[field], str):
                raise MalformedPayload(f"Missing field: {field}")

        if not data['session_id']:
            raise MalformedPayload("Missing field: session_id")
        if data['kind'] not in QR_KINDS:
            raise MalformedPayload("Unknown QR kind")

        try:
            expires_at = parse_rfc3339(data['expires_at'])
        except ValueError:
            raise MalformedPayload("Invalid expires_at")

        return QRPayload(
            session_id=data['session_id'],
            schedule_id=data['schedule_id'],
            expires_at=expires_at,
            kind=data['kind']
        )

    @staticmethod
    def render(payload: QRPayload, size: int = QR_IMAGE_SIZE) -> bytes:
        """Render the payload as a square PNG of fixed side length."""
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(QRService.encode(payload))
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white").get_image()
        img = img.convert('RGB').resize((size, size), Image.NEAREST)

        buffered = io.BytesIO()
        img.save(buffered, format="PNG")
        return buffered.getvalue()

    @staticmethod
    def render_data_uri(payload: QRPayload) -> str:
        img_str = base64.b64encode(QRService.render(payload)).decode()
        return f"data:image/png;base64,{img_str}"
