#!/usr/bin/env python3
"""
Build script for Render deployment.
This script initializes the database and creates necessary tables.
"""

import os

from app import create_app
from app_models import db, PaymentGatewaySettings


def ensure_platform_gateway_settings(platform_percent):
    """Platform-wide split row used by schools without their own settings"""
    settings = PaymentGatewaySettings.query.filter(PaymentGatewaySettings.school_id.is_(None)).first()
    if settings is None:
        settings = PaymentGatewaySettings(
            school_id=None,
            gateway_name='paystack',
            platform_percentage=platform_percent,
            school_percentage=100 - platform_percent,
            is_active=True,
        )
        db.session.add(settings)
        db.session.commit()
    return settings


def initialize_database():
    """Initialize database for production deployment."""
    app = create_app(os.environ.get('FLASK_CONFIG', 'production'))
    with app.app_context():
        print("Creating database tables...")
        db.create_all()

        print("Ensuring platform payment gateway settings...")
        ensure_platform_gateway_settings(app.config['PLATFORM_FEE_PERCENT'])

        print("Database initialization completed successfully!")


if __name__ == "__main__":
    initialize_database()
