"""Test the QR payload codec."""
import base64
import io
import json
from datetime import datetime

import pytest
from PIL import Image

from campus.services.qr_service import QR_IMAGE_SIZE, MalformedPayload, QRPayload, QRService

PAYLOAD = QRPayload(
    session_id='6f1c1f5e-0d7e-4e38-9d5e-3b1a9c1f2a11',
    schedule_id='',
    expires_at=datetime(2024, 5, 1, 9, 15),
    kind='kelas'
)


def test_encode_wire_format():
    data = json.loads(QRService.encode(PAYLOAD))
    assert data == {
        'session_id': PAYLOAD.session_id,
        'schedule_id': '',
        'expires_at': '2024-05-01T09:15:00Z',
        'kind': 'kelas'
    }


def test_decode_accepts_offsets():
    text = json.dumps({
        'session_id': 'abc',
        'schedule_id': 'sch',
        'expires_at': '2024-05-01T16:15:00+07:00',
        'kind': 'gate'
    })
    payload = QRService.decode(text)
    assert payload.expires_at == datetime(2024, 5, 1, 9, 15)
    assert payload.kind == 'gate'


def test_decode_inverts_encode():
    assert QRService.decode(QRService.encode(PAYLOAD)) == PAYLOAD


@pytest.mark.parametrize('text', [
    'not json',
    '[]',
    '{"session_id": "a", "schedule_id": "", "expires_at": "2024-05-01T09:15:00Z"}',
    '{"session_id": "", "schedule_id": "", "expires_at": "2024-05-01T09:15:00Z", "kind": "kelas"}',
    '{"session_id": "a", "schedule_id": null, "expires_at": "2024-05-01T09:15:00Z", "kind": "kelas"}',
    '{"session_id": "a", "schedule_id": "", "expires_at": "yesterday", "kind": "kelas"}',
    '{"session_id": "a", "schedule_id": "", "expires_at": "2024-05-01T09:15:00Z", "kind": "bus"}',
])
def test_decode_rejects_malformed(text):
    with pytest.raises(MalformedPayload):
        QRService.decode(text)


def test_render_fixed_size_png():
    png = QRService.render(PAYLOAD)
    image = Image.open(io.BytesIO(png))
    assert image.format == 'PNG'
    assert image.size == (QR_IMAGE_SIZE, QR_IMAGE_SIZE)


def test_render_data_uri():
    uri = QRService.render_data_uri(PAYLOAD)
    prefix = 'data:image/png;base64,'
    assert uri.startswith(prefix)
    assert base64.b64decode(uri[len(prefix):])[:8] == b'\x89PNG\r\n\x1a\n'
