"""
Configuration settings for CraftMind Nexus
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Code sandbox (Piston compatible API)
    SANDBOX_API_URL = os.getenv('SANDBOX_API_URL', 'http://localhost:2000/api/v2')
    SANDBOX_COMPILE_TIMEOUT_MS = int(os.getenv('SANDBOX_COMPILE_TIMEOUT_MS', 10000))
    SANDBOX_RUN_TIMEOUT_MS = int(os.getenv('SANDBOX_RUN_TIMEOUT_MS', 5000))
    SANDBOX_REQUEST_TIMEOUT = float(os.getenv('SANDBOX_REQUEST_TIMEOUT', 30))  # seconds
    CODE_ARTIFACT_MAX_PENDING_SECONDS = int(os.getenv('CODE_ARTIFACT_MAX_PENDING_SECONDS', 120))
    CODE_RESULT_CACHE_TTL = int(os.getenv('CODE_RESULT_CACHE_TTL', 3600))  # 0 disables Redis caching

    # Post-commit hooks (notifications, grade book) and sandbox dispatch
    BACKGROUND_TASKS = _env_bool('BACKGROUND_TASKS', True)
    NOTIFICATION_QUEUE_SIZE = int(os.getenv('NOTIFICATION_QUEUE_SIZE', 100))


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    FLASK_ENV = 'development'
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///craftmind_dev.db')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    FLASK_ENV = 'production'


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    BACKGROUND_TASKS = False
    SANDBOX_API_URL = 'http://sandbox.test/api/v2'
    SANDBOX_REQUEST_TIMEOUT = 2
    CODE_RESULT_CACHE_TTL = 0


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
