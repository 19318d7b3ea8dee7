"""Gateway routes: everything under /api/v1 is forwarded by domain."""
from flask import Blueprint

from campus.services.gateway_service import GatewayService

gateway_bp = Blueprint('gateway', __name__)

# OPTIONS preflights are answered by Flask-CORS.
METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE']


@gateway_bp.route('/<domain>', methods=METHODS)
@gateway_bp.route('/<domain>/<path:path>', methods=METHODS)
def forward(domain, path=''):
    return GatewayService.dispatch(domain, path)
