"""
Flask configuration for the English learning app backend
"""

import logging
import os

from dotenv import load_dotenv

# Values from a local .env file; real environment variables win
load_dotenv()

APP_ROOT = os.path.dirname(os.path.abspath(__file__))


class Config:
    """Settings shared by every environment"""

    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-this-in-production'
    DEBUG = False
    TESTING = False

    # File upload settings
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', 16 * 1024 * 1024))
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER') or os.path.join(APP_ROOT, 'uploads')

    # Optional S3 media storage
    S3_BUCKET_NAME = os.environ.get('S3_BUCKET_NAME')
    AWS_DEFAULT_REGION = os.environ.get('AWS_DEFAULT_REGION', 'eu-central-1')

    # CORS
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
    CORS_HEADERS = ['Content-Type', 'Authorization', 'x-auth-token', 'X-Requested-With']
    CORS_METHODS = ['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS']

    # Return the password reset token in the API response (no mailer configured)
    EXPOSE_RESET_TOKEN = os.environ.get('EXPOSE_RESET_TOKEN') == '1'

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    @classmethod
    def init_app(cls, app):
        """Create directories and configure logging"""
        os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format='%(asctime)s %(levelname)s %(name)s %(message)s'
        )


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = 'DEBUG'


class ProductionConfig(Config):
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'WARNING').upper()


class TestingConfig(Config):
    TESTING = True
    EXPOSE_RESET_TOKEN = True
    S3_BUCKET_NAME = None


CONFIGS = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
}


def get_config(name=None):
    return CONFIGS.get(name or os.environ.get('FLASK_ENV', 'production'), ProductionConfig)
