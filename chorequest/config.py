"""Flask configuration for ChoreQuest."""

import os
from pathlib import Path


class Config:
    """Base configuration."""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database settings
    DATA_DIR = Path(os.environ.get('DATA_DIR', '/data'))
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or f"sqlite:///{DATA_DIR / 'chorequest.db'}"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Economy settings
    RESET_HOUR = int(os.environ.get('RESET_HOUR', '7'))  # Hour of day chores become due again
    # 'never_reset' keeps streaks through missed due dates, 'reset_on_miss' restarts them
    STREAK_POLICY = os.environ.get('STREAK_POLICY', 'never_reset')
    # Count pending redemptions against the balance when a new one is requested
    REDEMPTION_HOLD_PENDING = os.environ.get('REDEMPTION_HOLD_PENDING', 'true').lower() == 'true'

    # Boundary with the external authentication layer
    ADMIN_API_TOKEN = os.environ.get('ADMIN_API_TOKEN')

    # Preset chores and rewards offered for bulk install
    PRESETS_FILE = os.environ.get('PRESETS_FILE') or str(Path(__file__).parent / 'presets.json')

    # Notifications
    WEBHOOK_URL = os.environ.get('WEBHOOK_URL')
    # Example: https://hooks.example.com/chorequest

    # Application settings
    DEBUG = os.environ.get('DEBUG', 'false').lower() == 'true'
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    DATA_DIR = Path(__file__).parent / 'data'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or f"sqlite:///{DATA_DIR / 'chorequest.db'}"


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    # Re-evaluate DATA_DIR and database URI to ensure environment variable is picked up
    DATA_DIR = Path(os.environ.get('DATA_DIR', '/data'))
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or f"sqlite:///{DATA_DIR / 'chorequest.db'}"


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    STREAK_POLICY = 'never_reset'
    REDEMPTION_HOLD_PENDING = True
    ADMIN_API_TOKEN = 'test-admin-token'
    WEBHOOK_URL = None


# Config dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
