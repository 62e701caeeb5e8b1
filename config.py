"""Configuration module for Flask application."""
import os
from decimal import Decimal
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    JSON_SORT_KEYS = False

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
    SENTRY_DSN = os.getenv('SENTRY_DSN')

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'insulcrm')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'insulcrm')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'insulcrm')

        DATABASE_URL = (
            f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'
    CREATE_SCHEMA = os.getenv('CREATE_SCHEMA', 'false').lower() == 'true'

    # Business Information (for quote PDFs)
    BUSINESS_NAME = os.getenv('BUSINESS_NAME', 'Insulation Installers Ltd')
    BUSINESS_ADDRESS = os.getenv('BUSINESS_ADDRESS', '')
    BUSINESS_PHONE = os.getenv('BUSINESS_PHONE', '')
    BUSINESS_EMAIL = os.getenv('BUSINESS_EMAIL', '')
    QUOTE_VALID_DAYS = int(os.getenv('QUOTE_VALID_DAYS', '30'))

    # Pricing defaults for new quotes
    PRICING_TIER_MARKUPS = {
        'Retail': Decimal(os.getenv('MARKUP_RETAIL', '60')),
        'Trade': Decimal(os.getenv('MARKUP_TRADE', '40')),
        'VIP': Decimal(os.getenv('MARKUP_VIP', '25')),
    }
    DEFAULT_PRICING_TIER = os.getenv('DEFAULT_PRICING_TIER', 'Retail')
    DEFAULT_MARKUP_PERCENT = Decimal(os.getenv('DEFAULT_MARKUP_PERCENT', '60'))
    DEFAULT_WASTE_PERCENT = Decimal(os.getenv('DEFAULT_WASTE_PERCENT', '10'))
    DEFAULT_LABOUR_RATE = Decimal(os.getenv('DEFAULT_LABOUR_RATE', '3.00'))
    # Internal installer cost per m2, distinct from the billed labour rate
    LABOUR_COST_RATE = Decimal(os.getenv('LABOUR_COST_RATE', '1.50'))
    GST_RATE = Decimal(os.getenv('GST_RATE', '0.15'))


class TestConfig(Config):
    """Configuration used by the test suite."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    CREATE_SCHEMA = True
    SENTRY_DSN = None
