# petqr/core/config.py

import os  # environment variables (.env is loaded in create_app)


def _env_bool(key: str, default: str) -> bool:
    return os.getenv(key, default).lower() in ("1", "true", "yes", "y")


class Config:
    """Settings shared by every environment."""
    # Signs and verifies the JWTs issued after a Firebase login.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    FIREBASE_CREDENTIALS_PATH = os.getenv('FIREBASE_CREDENTIALS_PATH')
    FIREBASE_STORAGE_BUCKET = os.getenv('FIREBASE_STORAGE_BUCKET')
    FIREBASE_ENABLED = True

    # Origin embedded in every QR code. Printed codes depend on it, so it must stay stable.
    PUBLIC_ORIGIN = os.getenv('PUBLIC_ORIGIN', 'http://localhost:5000').rstrip('/')

    # Reverse geocoding (Nominatim usage policy requires an identifying User-Agent)
    GEOCODING_URL = os.getenv('GEOCODING_URL', 'https://nominatim.openstreetmap.org/reverse')
    GEOCODING_TIMEOUT = float(os.getenv('GEOCODING_TIMEOUT', '5'))
    GEOCODING_USER_AGENT = os.getenv('GEOCODING_USER_AGENT', 'petqr/1.0')
    PERSIST_LOCATION_HISTORY = _env_bool('PERSIST_LOCATION_HISTORY', 'true')

    # QR rendering
    QR_ERROR_CORRECTION = os.getenv('QR_ERROR_CORRECTION', 'H')
    QR_BORDER = int(os.getenv('QR_BORDER', '4'))

    # Export pipeline
    EXPORT_CANVAS_SIZE = int(os.getenv('EXPORT_CANVAS_SIZE', '1200'))
    EXPORT_DXF_STRIDE = int(os.getenv('EXPORT_DXF_STRIDE', '10'))
    EXPORT_DXF_THRESHOLD = int(os.getenv('EXPORT_DXF_THRESHOLD', '128'))
    EXPORT_DXF_UNIT_SCALE = float(os.getenv('EXPORT_DXF_UNIT_SCALE', '0.1'))  # mm per pixel
    EXPORT_PDF_DPI = int(os.getenv('EXPORT_PDF_DPI', '150'))
    EXPORT_PDF_MARGIN_MM = float(os.getenv('EXPORT_PDF_MARGIN_MM', '10'))

    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # photo uploads


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    """Test settings. Firebase is not initialized; tests inject fakes."""
    TESTING = True
    DEBUG = False
    FIREBASE_ENABLED = False
    JWT_SECRET_KEY = 'test-secret-key-with-enough-length-for-hs256'
    PUBLIC_ORIGIN = 'https://petqr.example'
    PERSIST_LOCATION_HISTORY = True


class ProductionConfig(Config):
    DEBUG = False


# Maps FLASK_ENV to a config class; create_app picks the class from it.
config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig,
    production=ProductionConfig
)
