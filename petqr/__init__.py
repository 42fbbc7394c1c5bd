# petqr/__init__.py

# =====================================================================================
# 1. Environment (loaded before anything reads os.environ)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. Imports
# =====================================================================================
import os
import logging
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials

# - config / session
from petqr.core.config import config_by_name
from petqr.core.session import SessionStore

# - blueprints
from petqr.api.auth.routes import auth_bp
from petqr.api.pets.routes import pets_bp
from petqr.api.pet_info.routes import pet_info_bp
from petqr.api.admin.routes import admin_bp

# - services
from petqr.services.storage_service import StorageService
from petqr.services.qr_service import QRService
from petqr.services.export_service import ExportService
from petqr.services.geocoding_service import GeocodingService
from petqr.api.profiles.services import ProfileService
from petqr.api.auth.services import AuthService
from petqr.api.pets.services import PetService
from petqr.api.pet_info.services import PetInfoService


def create_app(config_name: str = None, db=None, bucket=None):
    """
    Flask application factory.

    `db` and `bucket` replace the Firestore client and Storage bucket;
    the testing config relies on them because it never initializes Firebase.
    """
    # =====================================================================================
    # 3. Flask app and config
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    app.json.ensure_ascii = False

    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    # =====================================================================================
    # 4. Extensions and Firebase
    # =====================================================================================
    jwt = JWTManager(app)

    if app.config['FIREBASE_ENABLED'] and not firebase_admin._apps:
        cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
        if not cred_path or not os.path.exists(cred_path):
            raise FileNotFoundError(f"Firebase credentials file not found: {cred_path}")
        cred = credentials.Certificate(cred_path)
        firebase_admin.initialize_app(cred, {
            'storageBucket': app.config['FIREBASE_STORAGE_BUCKET']
        })

    # =====================================================================================
    # 5. Services, stored on app.services (dependency injection)
    # =====================================================================================
    app.services = {}

    # 5-1. shared services with no dependencies
    storage_instance = StorageService(bucket=bucket)
    if bucket is None:
        try:
            storage_instance.init_app(app)
        except Exception as e:
            logging.error(f"Failed to initialize storage service: {e}")
            raise
    app.services['storage'] = storage_instance

    app.services['qr'] = QRService()
    app.services['qr'].init_app(app)

    app.services['export'] = ExportService()
    app.services['export'].init_app(app)

    app.services['geocoding'] = GeocodingService()
    app.services['geocoding'].init_app(app)

    # 5-2. the session state owned by the shell, fed by a single auth subscription
    app.services['sessions'] = SessionStore()
    app.services['profiles'] = ProfileService(db=db)
    app.services['auth'] = AuthService(profile_service=app.services['profiles'], db=db)
    app.services['auth'].subscribe(app.services['sessions'].handle_auth_event)

    # 5-3. domain services
    app.services['pets'] = PetService(storage_service=app.services['storage'], db=db)
    app.services['pet_info'] = PetInfoService(
        pet_service=app.services['pets'],
        geocoding_service=app.services['geocoding'],
        persist_history=app.config['PERSIST_LOCATION_HISTORY'],
    )
    logging.info("Pet services initialized successfully")

    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        return app.services['auth'].is_token_revoked(jwt_payload)

    # =====================================================================================
    # 6. Blueprints
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(pets_bp, url_prefix='/api/pets')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(pet_info_bp)

    # =====================================================================================
    # 7. Global error handlers
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # HTTP errors (404, 405, ...) keep their own status
        if isinstance(err, HTTPException):
            return jsonify({"error_code": err.name.upper().replace(' ', '_'), "message": err.description}), err.code
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "An unexpected server error occurred."}
        return jsonify(response), 500

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
