# petqr/api/admin/routes.py
import logging
from flask import Blueprint, request, jsonify, current_app, Response
from marshmallow import ValidationError

from petqr.api.pets.routes import serialize_pet
from petqr.api.pets.schemas import PetFormSchema, DeleteConfirmationSchema
from petqr.api.profiles.schemas import UserProfileResponseSchema, CreateUserSchema
from petqr.core.security import admin_required
from petqr.models.pet import MalformedRecordError

admin_bp = Blueprint('admin_bp', __name__)


# --- pets ---
@admin_bp.route('/pets', methods=['GET'])
@admin_required
def list_pets():
    """All pets, newest first. ?q= filters by pet name, owner name or phone."""
    pet_service = current_app.services['pets']
    try:
        pets = pet_service.list_pets(request.args.get('q'))
        return jsonify({"pets": [serialize_pet(pet) for pet in pets], "count": len(pets)}), 200
    except Exception as e:
        logging.error(f"Admin pet list error: {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "Could not load the pet list."}), 500


@admin_bp.route('/pets', methods=['POST'])
@admin_required
def create_pet():
    pet_service = current_app.services['pets']
    try:
        form = PetFormSchema().load(request.get_json(silent=True) or {})
        pet = pet_service.create_pet(form)
        return jsonify(serialize_pet(pet)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except Exception as e:
        logging.error(f"Admin pet creation error: {e}", exc_info=True)
        return jsonify({"error_code": "PET_CREATION_FAILED", "message": "Could not save the pet."}), 500


@admin_bp.route('/pets/<string:qr_id>', methods=['PUT'])
@admin_required
def update_pet(qr_id: str):
    pet_service = current_app.services['pets']
    try:
        form = PetFormSchema().load(request.get_json(silent=True) or {})
        pet = pet_service.update_pet(qr_id, form)
        return jsonify(serialize_pet(pet)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except (FileNotFoundError, MalformedRecordError) as e:
        return jsonify({"error_code": "PET_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"Admin pet update error (qr_id: {qr_id}): {e}", exc_info=True)
        return jsonify({"error_code": "UPDATE_FAILED", "message": "Could not update the pet."}), 500


@admin_bp.route('/pets/<string:qr_id>', methods=['DELETE'])
@admin_required
def delete_pet(qr_id: str):
    """Delete a pet. The body must repeat the qr_id as {"confirm": "<qr_id>"}."""
    pet_service = current_app.services['pets']
    try:
        confirmation = DeleteConfirmationSchema().load(request.get_json(silent=True) or {})
        if confirmation['confirm'] != qr_id:
            return jsonify({"error_code": "CONFIRMATION_REQUIRED", "message": "Confirmation does not match the pet's qr_id."}), 400
        pet_service.delete_pet(qr_id)
        return Response(status=204)
    except ValidationError as err:
        return jsonify({"error_code": "CONFIRMATION_REQUIRED", "details": err.messages}), 400
    except (FileNotFoundError, MalformedRecordError) as e:
        return jsonify({"error_code": "PET_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"Admin pet deletion error (qr_id: {qr_id}): {e}", exc_info=True)
        return jsonify({"error_code": "DELETE_FAILED", "message": "Could not delete the pet."}), 500


# --- users ---
@admin_bp.route('/users', methods=['GET'])
@admin_required
def list_users():
    profile_service = current_app.services['profiles']
    try:
        profiles = profile_service.list_profiles()
        return jsonify({"users": UserProfileResponseSchema(many=True).dump(profiles)}), 200
    except Exception as e:
        logging.error(f"Admin user list error: {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "Could not load the user list."}), 500


@admin_bp.route('/users', methods=['POST'])
@admin_required
def create_user():
    """Privileged user creation, delegated to Firebase Auth."""
    auth_service = current_app.services['auth']
    try:
        data = CreateUserSchema().load(request.get_json(silent=True) or {})
        profile = auth_service.create_user(data['email'])
        return jsonify(UserProfileResponseSchema().dump(profile)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "USER_EXISTS", "message": str(e)}), 409
    except Exception as e:
        logging.error(f"Admin user creation error: {e}", exc_info=True)
        return jsonify({"error_code": "USER_CREATION_FAILED", "message": "Could not create the user."}), 500


@admin_bp.route('/users/<string:user_id>/toggle-admin', methods=['POST'])
@admin_required
def toggle_admin(user_id: str):
    """Flip a user's admin flag and return the value now stored."""
    profile_service = current_app.services['profiles']
    auth_service = current_app.services['auth']
    try:
        profile = profile_service.toggle_admin(user_id)
        auth_service.notify_profile_updated(profile)
        return jsonify(UserProfileResponseSchema().dump(profile)), 200
    except FileNotFoundError as e:
        return jsonify({"error_code": "USER_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"Admin flag toggle error (user_id: {user_id}): {e}", exc_info=True)
        return jsonify({"error_code": "UPDATE_FAILED", "message": "Could not update the user."}), 500
