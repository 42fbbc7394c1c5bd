# petqr/api/auth/routes.py

import logging
import jwt
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity,
)
from firebase_admin import auth as firebase_auth
from marshmallow import ValidationError

from petqr.api.auth.schemas import LoginSchema, LogoutRequestSchema
from petqr.core.session import SessionState

auth_bp = Blueprint('auth_bp', __name__)


@auth_bp.route('/login', methods=['POST'])
def login():
    """Exchange a Firebase ID token for this API's access/refresh tokens."""
    auth_service = current_app.services['auth']
    try:
        validated_data = LoginSchema().load(request.get_json(silent=True) or {})
        user_id, profile = auth_service.sign_in(validated_data['id_token'])

        return jsonify({
            "access_token": create_access_token(identity=user_id),
            "refresh_token": create_refresh_token(identity=user_id),
            "user_id": user_id,
            "is_admin": bool(profile and profile.is_admin),
        }), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except (firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError, firebase_auth.RevokedIdTokenError, ValueError) as e:
        logging.warning(f"Rejected Firebase ID token: {e}")
        return jsonify({"error_code": "INVALID_ID_TOKEN", "message": "Invalid or expired sign-in token."}), 401
    except Exception as e:
        logging.error(f"Login failed: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "Internal server error."}), 500


@auth_bp.route('/token/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_token():
    """Issue a new access token from a valid refresh token."""
    current_user_id = get_jwt_identity()
    new_access_token = create_access_token(identity=current_user_id)
    return jsonify(access_token=new_access_token), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Sign out: both tokens go to the blocklist and the session is dropped."""
    auth_service = current_app.services['auth']
    try:
        data = LogoutRequestSchema().load(request.get_json(silent=True) or {})

        secret_key = current_app.config['JWT_SECRET_KEY']
        algorithm = current_app.config.get('JWT_ALGORITHM', 'HS256')

        # expired tokens can still be logged out
        decoded_access = jwt.decode(data['access_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})
        decoded_refresh = jwt.decode(data['refresh_token'], secret_key, algorithms=[algorithm], options={"verify_exp": False})

        auth_service.sign_out(
            decoded_access['sub'],
            decoded_access['jti'], decoded_access['exp'],
            decoded_refresh['jti'], decoded_refresh['exp'],
        )
        return jsonify({"message": "Signed out."}), 200

    except ValidationError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": e.messages}), 400
    except jwt.PyJWTError as e:
        logging.error(f"JWT decode error: {e}", exc_info=True)
        return jsonify({"error_code": "INVALID_TOKEN", "message": "Invalid token."}), 422
    except Exception as e:
        logging.error(f"Logout failed: {e}", exc_info=True)
        return jsonify({"error_code": "LOGOUT_FAILED", "message": "Could not sign out."}), 500


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    """Current session state as tracked by the application shell."""
    user_id = get_jwt_identity()
    session = current_app.services['sessions'].get(user_id)
    if session is None:
        # token outlived the in-memory session (e.g. after a restart)
        profile = current_app.services['profiles'].get_profile(user_id)
        session = SessionState(
            user_id=user_id,
            email=profile.email if profile else None,
            is_admin=bool(profile and profile.is_admin),
            signed_in=True,
        )
    return jsonify(session.to_dict()), 200
