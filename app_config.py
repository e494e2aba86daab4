"""
Configuration for the SchoolDesk service
"""
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
INSTANCE_DIR = os.path.join(BASE_DIR, 'instance')


def _database_url(default):
    database_url = os.environ.get('DATABASE_URL')
    if database_url and database_url.startswith("postgres://"):
        # Render and Heroku still hand out the old scheme
        return database_url.replace("postgres://", "postgresql://", 1)
    return database_url or default


class Config:
    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY')
    DEBUG = False
    TESTING = False
    JSON_SORT_KEYS = False
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # Database
    SQLALCHEMY_DATABASE_URI = _database_url(f"sqlite:///{os.path.join(INSTANCE_DIR, 'schooldesk.db')}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Provider secrets: no defaults
    PAYSTACK_SECRET_KEY = os.environ.get('PAYSTACK_SECRET_KEY')
    RESEND_API_KEY = os.environ.get('RESEND_API_KEY')
    SUPABASE_JWT_SECRET = os.environ.get('SUPABASE_JWT_SECRET')
    GOOGLE_MAPS_API_KEY = os.environ.get('GOOGLE_MAPS_API_KEY')

    # Provider endpoints
    PAYSTACK_BASE_URL = os.environ.get('PAYSTACK_BASE_URL', 'https://api.paystack.co')
    RESEND_API_URL = os.environ.get('RESEND_API_URL', 'https://api.resend.com/emails')
    GOOGLE_PLACES_URL = os.environ.get('GOOGLE_PLACES_URL', 'https://maps.googleapis.com/maps/api/place')
    HTTP_TIMEOUT = int(os.environ.get('HTTP_TIMEOUT', 15))

    # Email
    MAIL_FROM_ADDRESS = os.environ.get('MAIL_FROM_ADDRESS', 'onboarding@resend.dev')
    PLATFORM_NAME = os.environ.get('PLATFORM_NAME', 'SchoolDesk')
    APP_URL = os.environ.get('APP_URL', 'http://localhost:5173')

    # Auth
    JWT_AUDIENCE = os.environ.get('JWT_AUDIENCE', 'authenticated')

    # Revenue split used when a school has no gateway settings row
    PLATFORM_FEE_PERCENT = float(os.environ.get('PLATFORM_FEE_PERCENT', 5))

    # Scheduled reminders
    REMINDER_ERROR_DETAIL_LIMIT = 10

    # CORS
    CORS_ALLOW_ORIGIN = os.environ.get('CORS_ALLOW_ORIGIN', '*')

    @staticmethod
    def init_app(app):
        if not os.path.exists(INSTANCE_DIR):
            os.makedirs(INSTANCE_DIR)


class DevelopmentConfig(Config):
    DEBUG = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key')


class ProductionConfig(Config):
    PREFERRED_URL_SCHEME = 'https'

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 1800,  # Recycle connections after 30 minutes
    }

    @staticmethod
    def init_app(app):
        Config.init_app(app)
        if not app.config.get('SECRET_KEY'):
            raise RuntimeError('SECRET_KEY must be set in production')
        app.config['PREFERRED_URL_SCHEME'] = 'https'


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    PAYSTACK_SECRET_KEY = 'sk_test_secret'
    RESEND_API_KEY = 're_test_key'
    SUPABASE_JWT_SECRET = 'test-jwt-secret-with-enough-length-for-hs256'
    GOOGLE_MAPS_API_KEY = 'maps-test-key'
    APP_URL = 'https://app.example.test'


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}
