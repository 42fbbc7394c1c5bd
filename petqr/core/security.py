# petqr/core/security.py
import logging
from functools import wraps
from flask import jsonify, g, current_app
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity


def admin_required(f):
    """
    Admin console gate: a valid access token whose identity has a profile
    with the admin flag set. The flag is read from the store on every call,
    never from the token, so a revoked admin loses access immediately.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        user_id = get_jwt_identity()

        profile_service = current_app.services['profiles']
        try:
            is_admin = profile_service.is_admin(user_id)
        except Exception as e:
            logging.error(f"Admin check failed for user {user_id}: {e}", exc_info=True)
            return jsonify({"error_code": "PERMISSION_CHECK_FAILED", "message": "Could not verify your permissions.", "redirect": "/"}), 500

        if not is_admin:
            logging.warning(f"Non-admin user {user_id} tried to reach the admin console")
            return jsonify({"error_code": "FORBIDDEN", "message": "You do not have permission to access this page.", "redirect": "/"}), 403

        g.user_id = user_id
        return f(*args, **kwargs)

    return decorated_function
