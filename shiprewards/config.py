"""
Configuration management for the ShipRewards platform.

Business-rule parameters (discount tiers, cashback tiers, points multipliers,
membership thresholds) are NOT stored here - they live in the
``program_configs`` table and are read once per engine run. This module only
holds deployment settings and the engine's structural constants.
"""
import os
from dotenv import load_dotenv

load_dotenv()


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Anchored period length in calendar months
    REWARDS_PERIOD_MONTHS = int(os.getenv('REWARDS_PERIOD_MONTHS', '3'))

    # Safety cap for the period builder: 40 periods = 10 years of quarters
    REWARDS_MAX_PERIODS = int(os.getenv('REWARDS_MAX_PERIODS', '40'))

    # Used when points_config omits base_amount_per_point
    REWARDS_DEFAULT_BASE_AMOUNT_PER_POINT = 10_000

    # Background engine runs (cron expressions, UTC)
    REWARDS_INITIAL_CRON = os.getenv('REWARDS_INITIAL_CRON', '0 1 * * *')
    REWARDS_QUARTERLY_CRON = os.getenv('REWARDS_QUARTERLY_CRON', '30 1 * * *')

    # Dashboard origins allowed by CORS
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')
        if origin.strip()
    ]


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///shiprewards_dev.db'  # SQLite fallback for local dev
    )


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,
    }

    _secret_key = os.getenv('SECRET_KEY', '')

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Validate SECRET_KEY in production environment.

        Raises:
            RuntimeError: If SECRET_KEY is missing, too short or obviously unsafe
        """
        if not cls._secret_key:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY environment variable is not set!\n"
                "Production deployments MUST have a secure SECRET_KEY."
            )

        lower_key = cls._secret_key.lower()
        for pattern in ('dev', 'change', 'default', 'test', 'secret', 'password'):
            if pattern in lower_key:
                raise RuntimeError(
                    f"CRITICAL: SECRET_KEY contains '{pattern}' which suggests it's not secure!"
                )

        if len(cls._secret_key) < 32:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY is too short (minimum 32 characters required)!"
            )

        return cls._secret_key

    SECRET_KEY = _secret_key  # Validated at app startup


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    REWARDS_PERIOD_MONTHS = 3
    REWARDS_MAX_PERIODS = 40


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Raises:
        RuntimeError: If validation fails in production
    """
    if config_name == 'production':
        ProductionConfig.validate_secret_key()
