# backend/campus/services/gateway_service.py
"""Edge dispatcher: authenticate, route by domain, forward, log events."""
import time
import uuid
from typing import Dict, Iterable, Optional, Tuple

import requests
from flask import Response, current_app, request, stream_with_context

from campus import event_bus
from campus.services.auth_service import AuthService
from campus.utils.decorators import Subject
from campus.utils.errors import BadGatewayError, NotFoundError
from campus.utils.helpers import isoformat, utcnow

# domain -> (service name, config key holding its base URL)
ROUTES = {
    'auth': ('auth', 'AUTH_SERVICE_URL'),
    'users': ('user', 'USER_SERVICE_URL'),
    'attendance': ('attendance', 'ATTENDANCE_SERVICE_URL'),
    'schedules': ('schedule', 'SCHEDULE_SERVICE_URL'),
    'qr': ('qr', 'QR_SERVICE_URL'),
    'courses': ('course', 'COURSE_SERVICE_URL'),
    'access': ('access', 'ACCESS_SERVICE_URL'),
}

PUBLIC_PATHS = {'auth/login', 'auth/refresh', 'auth/register', 'qr/gate/validate'}

MUTATING_METHODS = {'POST', 'PUT', 'PATCH', 'DELETE'}
SENSITIVE_PREFIXES = ('auth', 'access', 'users', 'qr/access', 'qr/gate')

METHOD_ACTIONS = {
    'GET': 'read',
    'HEAD': 'read',
    'POST': 'create',
    'PUT': 'update',
    'PATCH': 'update',
    'DELETE': 'delete',
}

# Never forwarded in either direction.
HOP_BY_HOP_HEADERS = {
    'connection', 'keep-alive', 'proxy-authenticate', 'proxy-authorization',
    'te', 'trailers', 'transfer-encoding', 'upgrade', 'host', 'content-length',
}

IDENTITY_HEADERS = ('X-User-ID', 'X-User-Role', 'X-User-Email')

STREAM_CHUNK_SIZE = 8192


def resolve_route(domain: str) -> Tuple[str, str]:
    """Service name and base URL for a domain, or NotFound."""
    if domain not in ROUTES:
        raise NotFoundError(f"Route /api/v1/{domain}")
    service, key = ROUTES[domain]
    return service, current_app.config[key].rstrip('/')


def is_public(domain: str, path: str) -> bool:
    return f'{domain}/{path}'.rstrip('/') in PUBLIC_PATHS


def needs_audit(method: str, domain: str, path: str) -> bool:
    full = f'{domain}/{path}'
    return method in MUTATING_METHODS or any(
        full == p or full.startswith(p + '/') for p in SENSITIVE_PREFIXES
    )


def audit_action(method: str, domain: str, path: str) -> str:
    if domain == 'auth' and path:
        return path.split('/')[0]
    return METHOD_ACTIONS.get(method, method.lower())


def bearer_token() -> Optional[str]:
    header = request.headers.get('Authorization', '')
    if header.lower().startswith('bearer '):
        return header[7:].strip()
    return None


def forward_headers(subject: Optional[Subject], request_id: str) -> Dict[str, str]:
    headers = {
        k: v for k, v in request.headers.items()
        if k.lower() not in HOP_BY_HOP_HEADERS and k not in IDENTITY_HEADERS
    }
    if subject is not None:
        headers['X-User-ID'] = subject.id or ''
        headers['X-User-Role'] = subject.role or ''
        headers['X-User-Email'] = subject.email or ''
    headers['X-Request-ID'] = request_id
    headers['X-Forwarded-For'] = request.remote_addr or ''
    return headers


def body_chunks() -> Iterable[bytes]:
    stream = request.stream
    while True:
        chunk = stream.read(STREAM_CHUNK_SIZE)
        if not chunk:
            break
        yield chunk


class GatewayService:

    @staticmethod
    def dispatch(domain: str, path: str = '') -> Response:
        """Forward the current request to the backend owning `domain`."""
        started = time.monotonic()
        service, base_url = resolve_route(domain)

        subject = None
        if not is_public(domain, path):
            subject = AuthService.validate(bearer_token())

        url = f"{base_url}/api/v1/{domain}"
        if path:
            url = f"{url}/{path}"

        request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
        headers = forward_headers(subject, request_id)
        has_body = request.content_length or request.headers.get('Transfer-Encoding')
        try:
            upstream = requests.request(
                request.method,
                url,
                params=request.args,
                data=body_chunks() if has_body else None,
                headers=headers,
                stream=True,
                allow_redirects=False,
                timeout=current_app.config.get('GATEWAY_UPSTREAM_TIMEOUT', 30),
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            current_app.logger.error(f"Upstream {service} unreachable: {e}")
            GatewayService.publish_events(service, domain, path, subject, 502, started, request_id)
            raise BadGatewayError("failed to reach service", e)

        GatewayService.publish_events(service, domain, path, subject, upstream.status_code, started,
                                     request_id)

        response_headers = [
            (k, v) for k, v in upstream.headers.items()
            if k.lower() not in HOP_BY_HOP_HEADERS and k.lower() != 'content-encoding'
        ]

        def generate():
            try:
                for chunk in upstream.iter_content(chunk_size=STREAM_CHUNK_SIZE):
                    yield chunk
            finally:
                upstream.close()

        return Response(
            stream_with_context(generate()),
            status=upstream.status_code,
            headers=response_headers,
            content_type=upstream.headers.get('Content-Type'),
        )

    @staticmethod
    def publish_events(service: str, domain: str, path: str, subject: Optional[Subject],
                       status_code: int, started: float, request_id: str) -> None:
        """Queue request and audit events; the response never waits on them."""
        now = isoformat(utcnow())
        user_id = subject.id if subject else None
        role = subject.role if subject else None

        entry = {
            'request_id': request_id,
            'timestamp': now,
            'service': service,
            'method': request.method,
            'path': request.path,
            'status_code': status_code,
            'duration_ms': round((time.monotonic() - started) * 1000, 2),
            'user_id': user_id,
            'role': role,
            'ip': request.remote_addr,
            'user_agent': request.headers.get('User-Agent'),
        }
        try:
            event_bus.publish_request_log(entry)
            if needs_audit(request.method, domain, path):
                event_bus.publish_audit_log({
                    'timestamp': now,
                    'user_id': user_id,
                    'role': role,
                    'action': audit_action(request.method, domain, path),
                    'resource': service,
                    'resource_path': request.path,
                    'method': request.method,
                    'status_code': status_code,
                    'ip': request.remote_addr,
                })
        except Exception as e:
            current_app.logger.warning(f"Could not queue gateway events: {e}")
