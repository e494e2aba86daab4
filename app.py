import logging
import os

from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from app_config import config
from app_models import db
from email_service import EmailService
from exceptions import SchoolDeskError
from health import health_bp
from helpers import create_response, setup_logging
from paystack_service import PaystackClient
from places_service import PlacesClient
from routes import api_bp
from security import init_security

logger = logging.getLogger(__name__)


def create_app(config_name=None, paystack=None, mailer=None, places=None):
    """
    Build the Flask app.

    Provider clients are created from configuration unless passed in, and
    are reachable at app.extensions['schooldesk'].
    """
    config_name = config_name or os.environ.get('FLASK_CONFIG', 'default')
    config_class = config[config_name]

    app = Flask(__name__, instance_path=os.path.join(os.path.dirname(os.path.abspath(__file__)), 'instance'))
    app.config.from_object(config_class)
    config_class.init_app(app)
    setup_logging(app.config.get('DEBUG', False))

    db.init_app(app)
    init_security(app)

    timeout = app.config['HTTP_TIMEOUT']
    app.extensions['schooldesk'] = {
        'paystack': paystack or PaystackClient(
            app.config.get('PAYSTACK_SECRET_KEY'),
            base_url=app.config['PAYSTACK_BASE_URL'],
            timeout=timeout,
        ),
        'mailer': mailer or EmailService(
            app.config.get('RESEND_API_KEY'),
            from_address=app.config['MAIL_FROM_ADDRESS'],
            api_url=app.config['RESEND_API_URL'],
            timeout=timeout,
        ),
        'places': places or PlacesClient(
            app.config.get('GOOGLE_MAPS_API_KEY'),
            base_url=app.config['GOOGLE_PLACES_URL'],
            timeout=timeout,
        ),
    }

    app.register_blueprint(health_bp)
    app.register_blueprint(api_bp)
    register_error_handlers(app)

    logger.info("SchoolDesk started with %s configuration", config_name)
    return app


def register_error_handlers(app):

    @app.errorhandler(SchoolDeskError)
    def handle_schooldesk_error(e):
        if e.status_code >= 500:
            logger.error("%s: %s", type(e).__name__, e.message)
            data = None
        else:
            data = e.details or None
        return jsonify(create_response(False, e.to_message(), data)), e.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        db.session.rollback()
        logger.exception("Database error")
        return jsonify(create_response(False, 'Database error')), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify(create_response(False, e.description or e.name)), e.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        db.session.rollback()
        logger.exception("Unhandled error")
        return jsonify(create_response(False, 'Internal server error')), 500


if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        # Create database tables
        db.create_all()
    app.run(host='127.0.0.1', port=5001, debug=True)
