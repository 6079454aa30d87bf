import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    DATABASE_URL = os.environ.get('DATABASE_URL') or 'sqlite:///edurate.db'
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLITE_BUSY_TIMEOUT = int(os.environ.get('SQLITE_BUSY_TIMEOUT', '15'))  # seconds

    # Token Settings
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get('ACCESS_TOKEN_EXPIRE_MINUTES', str(60 * 24)))

    # Review Settings
    RATING_MIN = 1
    RATING_MAX = 5
    TREND_THRESHOLD = float(os.environ.get('TREND_THRESHOLD', '0.3'))

    # Classroom Settings
    JOIN_CODE_LENGTH = int(os.environ.get('JOIN_CODE_LENGTH', '6'))
    JOIN_CODE_ALPHABET = 'ABCDEFGHJKMNPQRSTUVWXYZ23456789'  # no 0/O, 1/I/L

    # Audit Settings
    AUDIT_LOG_PAGE_SIZE = int(os.environ.get('AUDIT_LOG_PAGE_SIZE', '100'))

    # Logging
    LOG_FILE = os.environ.get('LOG_FILE', 'logs/edurate.log')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    DEBUG = True
    TESTING = True
    DATABASE_URL = 'sqlite:///test_edurate.db'
    SQLALCHEMY_DATABASE_URI = DATABASE_URL


class ProductionConfig(Config):
    DEBUG = False
    TESTING = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
