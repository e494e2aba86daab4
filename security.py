import hashlib
import hmac
import logging
from functools import wraps

from flask import current_app, g, request
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from app_models import UserRole
from exceptions import AuthenticationError, AuthorizationError, ConfigurationError

logger = logging.getLogger(__name__)

SERVICE_ROLE = 'service_role'


def add_security_headers(response):
    """Add CORS and security headers to response"""
    response.headers['Access-Control-Allow-Origin'] = current_app.config.get('CORS_ALLOW_ORIGIN', '*')
    response.headers['Access-Control-Allow-Headers'] = (
        'authorization, x-client-info, apikey, content-type, x-paystack-signature'
    )
    response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'

    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['Referrer-Policy'] = 'same-origin'
    response.headers['Permissions-Policy'] = 'geolocation=(), microphone=(), camera=()'
    if current_app.config.get('PREFERRED_URL_SCHEME') == 'https':
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

    # Generated documents and API payloads are never cached
    response.headers['Cache-Control'] = 'no-store, no-cache, must-revalidate, max-age=0'
    return response


def init_security(app):
    """Initialize security features for the Flask app"""
    app.after_request(add_security_headers)


def decode_token(token):
    secret = current_app.config.get('SUPABASE_JWT_SECRET')
    if not secret:
        raise ConfigurationError('SUPABASE_JWT_SECRET is not configured')
    try:
        return jwt.decode(token, secret, algorithms=['HS256'],
                          audience=current_app.config.get('JWT_AUDIENCE'))
    except ExpiredSignatureError as e:
        raise AuthenticationError('Token has expired') from e
    except JWTError as e:
        raise AuthenticationError('Invalid token') from e


def bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        raise AuthenticationError('Missing authorization header')
    return token.strip()


def user_roles(user_id):
    return {r.role for r in UserRole.query.filter_by(user_id=user_id).all()}


def authenticate():
    """Decode the bearer token and load the caller's roles onto g"""
    claims = decode_token(bearer_token())
    g.claims = claims
    g.is_service = claims.get('role') == SERVICE_ROLE
    g.current_user = claims.get('sub')
    if not g.is_service and not g.current_user:
        raise AuthenticationError('Token has no subject')
    g.roles = user_roles(g.current_user) if g.current_user else set()
    return claims


def require_auth(*roles, allow_service=False):
    """
    Reject the request before the view runs unless it carries a valid
    bearer token and, when roles are given, the caller holds one of them.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            authenticate()
            if roles and not (g.roles & set(roles)):
                if not (allow_service and g.is_service):
                    logger.warning("User %s lacks role %s for %s", g.current_user, roles, request.path)
                    raise AuthorizationError('Insufficient permissions')
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def paystack_signature(body, secret):
    return hmac.new(secret.encode('utf-8'), body, hashlib.sha512).hexdigest()


def verify_paystack_signature(body, signature, secret):
    """HMAC-SHA512 of the raw body with the Paystack secret key"""
    if not secret:
        raise ConfigurationError('PAYSTACK_SECRET_KEY is not configured')
    if not signature:
        raise AuthenticationError('Missing webhook signature')
    if not hmac.compare_digest(paystack_signature(body, secret), signature):
        logger.error("Invalid webhook signature")
        raise AuthenticationError('Invalid signature')


def require_school_role(school_id, *roles):
    """The caller must hold one of roles on school_id; super_admin covers every school"""
    if 'super_admin' in g.roles:
        return
    held = None
    if g.current_user and school_id is not None:
        held = (UserRole.query
                .filter(UserRole.user_id == g.current_user,
                        UserRole.school_id == school_id,
                        UserRole.role.in_(roles))
                .first())
    if held is None:
        logger.warning("User %s has no %s role on school %s", g.current_user, roles, school_id)
        raise AuthorizationError('Insufficient permissions for this school')
