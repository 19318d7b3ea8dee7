# backend/campus/services/gate_service.py
"""Gate access: personal tokens and tap in/out decisions."""
import secrets
from datetime import timedelta
from typing import Dict, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError

from campus import db
from campus.models.access_log import AccessLog
from campus.models.gate_token import GateAccessToken
from campus.models.user import User
from campus.services.attendance_service import emit_event
from campus.services.qr_service import MalformedPayload, QRPayload, QRService
from campus.utils.decorators import Subject
from campus.utils.errors import BadRequestError, ConflictError, NotFoundError
from campus.utils.helpers import utcnow
from campus.utils.validators import Validator

TAP_IN = 'tap_in'
TAP_OUT = 'tap_out'
DENIED = 'denied'

OUTCOME_MESSAGES = {
    TAP_IN: "Access granted, tapped in",
    TAP_OUT: "Access granted, tapped out",
}
HOLDER_EXCLUDED = ['id', 'user_id', 'created_at', 'updated_at', 'deleted_at']

TOKEN_BYTES = 32
# Only used for the expires_at shown in the QR; the stored token never expires.
ENCODED_LIFETIME = timedelta(days=365)


class GateService:

    @staticmethod
    def get_or_create_token(user_id: str) -> Dict:
        """Return the subject's active token, issuing one on first use."""
        user = User.get_alive(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        if not user.is_active:
            raise BadRequestError("user is not active")

        token = GateAccessToken.get_active_for_user(user.id)
        if token is None:
            value = secrets.token_urlsafe(TOKEN_BYTES)
            token = GateAccessToken(user_id=user.id, token=value, session_id=value, is_active=True)
            try:
                db.session.add(token)
                db.session.commit()
                current_app.logger.info(f"Gate token issued for {user.id}")
            except IntegrityError as e:
                # Lost a race with a concurrent request for the same subject.
                db.session.rollback()
                token = GateAccessToken.get_active_for_user(user.id)
                if token is None:
                    raise ConflictError("gate token could not be issued", e)

        payload = QRPayload(
            session_id=token.session_id,
            schedule_id='',
            expires_at=token.created_at + ENCODED_LIFETIME,
            kind='gate'
        )
        return {
            'token_id': token.id,
            'session_id': token.session_id,
            'qr_code': QRService.render_data_uri(payload),
            'qr_data': QRService.encode(payload),
            'expires_at': payload.to_dict()['expires_at'],
        }

    @staticmethod
    def validate_at_gate(session_id: str, gate_id: Optional[str] = None) -> Dict:
        """Decide tap in or tap out with a single conditional update."""
        now = utcnow()
        token = GateAccessToken.get_usable_by_session(session_id, now)
        if token is None or token.user is None:
            return GateService._deny("unknown or revoked gate token", now, gate_id)
        if not token.user.is_active or token.user.deleted_at is not None:
            current_app.logger.warning(f"Gate denied for inactive user {token.user_id}")
            return GateService._deny("user is not active", now, gate_id, token)

        window = timedelta(hours=current_app.config.get('GATE_TAP_WINDOW_HOURS', 12))
        user_id = token.user_id

        if GateAccessToken.close_cycle(session_id, now, window) == 1:
            outcome = TAP_OUT
        else:
            GateAccessToken.open_cycle(session_id, now)
            outcome = TAP_IN
        db.session.add(AccessLog(
            user_id=user_id, token_id=token.id, gate_id=gate_id,
            outcome=outcome, is_allowed=True, occurred_at=now
        ))
        db.session.commit()

        current_app.logger.info(f"Gate {outcome} for {user_id}")
        emit_event('access', outcome, {'user_id': user_id, 'gate_id': gate_id, 'at': now.isoformat()})
        return {
            'valid': True,
            'tap_outcome': outcome,
            'message': OUTCOME_MESSAGES[outcome],
            'holder': GateService._holder(user_id),
        }

    @staticmethod
    def validate_gate_qr(qr_data: str, gate_id: Optional[str] = None) -> Dict:
        """Gate device entry point: the raw scanned string, decoded here."""
        try:
            payload = QRService.decode(qr_data)
        except MalformedPayload:
            return GateService._deny("invalid QR code data", utcnow(), gate_id)
        if payload.kind != 'gate':
            return GateService._deny("QR code is not a gate access QR", utcnow(), gate_id)
        return GateService.validate_at_gate(payload.session_id, gate_id)

    @staticmethod
    def _deny(reason: str, now, gate_id: Optional[str], token: GateAccessToken = None) -> Dict:
        db.session.add(AccessLog(
            user_id=token.user_id if token else None,
            token_id=token.id if token else None,
            gate_id=gate_id, outcome=DENIED, is_allowed=False, reason=reason, occurred_at=now
        ))
        db.session.commit()
        return {'valid': False, 'tap_outcome': DENIED, 'message': reason}

    @staticmethod
    def _holder(user_id: str) -> Optional[Dict]:
        """Name, number and program or unit of the token holder."""
        user, detail = User.load_with_detail(user_id)
        if user is None:
            return None
        holder = {'user_id': user.id, 'role': user.role.value, 'email': user.email}
        if detail is not None:
            holder.update(detail.to_dict(exclude=HOLDER_EXCLUDED))
        return holder

    @staticmethod
    def access_history(subject: Subject, filters: Dict) -> Tuple[list, int, int, int]:
        """Newest first; only staff may look past their own taps."""
        query = AccessLog.query
        if subject.role != 'staff':
            query = query.filter(AccessLog.user_id == subject.id)
        elif filters.get('user_id'):
            query = query.filter(AccessLog.user_id == filters['user_id'])

        if filters.get('gate_id'):
            query = query.filter(AccessLog.gate_id == filters['gate_id'])
        if filters.get('outcome'):
            outcome = Validator.one_of(filters['outcome'], [TAP_IN, TAP_OUT, DENIED], 'outcome')
            query = query.filter(AccessLog.outcome == outcome)

        page = max(Validator.parse_int(filters.get('page'), 'page', 1), 1)
        per_page = Validator.parse_int(filters.get('per_page'), 'per_page',
                                       current_app.config.get('DEFAULT_PAGE_SIZE', 20))
        per_page = min(max(per_page, 1), current_app.config.get('MAX_PAGE_SIZE', 100))

        total = query.count()
        logs = query.order_by(
            AccessLog.occurred_at.desc(), AccessLog.created_at.desc()
        ).offset((page - 1) * per_page).limit(per_page).all()

        return [log.to_dict() for log in logs], page, per_page, total
