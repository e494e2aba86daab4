import logging

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app_models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__)

PROVIDER_SECRETS = {
    'paystack': 'PAYSTACK_SECRET_KEY',
    'resend': 'RESEND_API_KEY',
    'google_places': 'GOOGLE_MAPS_API_KEY',
    'auth': 'SUPABASE_JWT_SECRET',
}


@health_bp.route('/health')
def health_check():
    """Liveness probe for Render"""
    return jsonify({
        'status': 'ok',
        'message': 'Service is running',
        'version': '1.0.0'
    })


@health_bp.route('/health/ready')
def readiness_check():
    """Database reachable; lists which provider secrets are set (never their values)"""
    try:
        db.session.execute(text('SELECT 1'))
        database = 'ok'
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Readiness check failed: %s", e)
        database = 'unavailable'

    providers = {name: bool(current_app.config.get(key)) for name, key in PROVIDER_SECRETS.items()}
    ready = database == 'ok'
    return jsonify({
        'status': 'ok' if ready else 'unavailable',
        'database': database,
        'providers': providers,
    }), 200 if ready else 503
