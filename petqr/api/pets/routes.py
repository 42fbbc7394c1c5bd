# petqr/api/pets/routes.py
import io
import logging
from dataclasses import asdict
from flask import Blueprint, request, jsonify, current_app, send_file
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from petqr.models.pet import PetRecord, MalformedRecordError
from petqr.services.export_service import QRGraphicNotFoundError, UnsupportedExportFormatError
from .schemas import PetFormSchema, PetResponseSchema, ExportQuerySchema

pets_bp = Blueprint('pets_bp', __name__)


def serialize_pet(pet: PetRecord) -> dict:
    """Pet record plus its QR value, shaped by PetResponseSchema."""
    qr_service = current_app.services['qr']
    pet_dict = asdict(pet)
    pet_dict['qr_value'] = qr_service.qr_value_for(pet)
    return PetResponseSchema().dump(pet_dict)


def _invalid_code(qr_id: str):
    return jsonify({"error_code": "INVALID_QR_CODE", "message": f"No pet found for code '{qr_id}'."}), 404


def _can_edit(pet: PetRecord, user_id: str) -> bool:
    is_admin = current_app.services['profiles'].is_admin(user_id)
    return current_app.services['pets'].can_edit(pet, user_id, is_admin)


@pets_bp.route('/', methods=['POST'])
@jwt_required()
def create_pet():
    """Profile form submission: persist the pet and hand back its QR value."""
    user_id = get_jwt_identity()
    pet_service = current_app.services['pets']
    try:
        form = PetFormSchema().load(request.get_json(silent=True) or {})
        pet = pet_service.create_pet(form, owner_id=user_id)
        return jsonify(serialize_pet(pet)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except Exception as e:
        logging.error(f"Pet creation API error: {e}", exc_info=True)
        return jsonify({"error_code": "PET_CREATION_FAILED", "message": "Could not save the pet."}), 500


@pets_bp.route('/<string:qr_id>', methods=['GET'])
@jwt_required()
def get_pet(qr_id: str):
    pet_service = current_app.services['pets']
    try:
        pet = pet_service.get_by_qr_id(qr_id)
        if not pet:
            return _invalid_code(qr_id)
        return jsonify(serialize_pet(pet)), 200
    except MalformedRecordError as e:
        logging.error(f"Malformed pet row for qr_id {qr_id}: {e}")
        return _invalid_code(qr_id)
    except Exception as e:
        logging.error(f"Get pet API error (qr_id: {qr_id}): {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "Could not load the pet."}), 500


@pets_bp.route('/<string:qr_id>', methods=['PUT'])
@jwt_required()
def update_pet(qr_id: str):
    """[owner or admin] Full-record update. The qr_id never changes."""
    user_id = get_jwt_identity()
    pet_service = current_app.services['pets']
    try:
        form = PetFormSchema().load(request.get_json(silent=True) or {})
        pet = pet_service.get_pet(qr_id)
        if not _can_edit(pet, user_id):
            return jsonify({"error_code": "FORBIDDEN", "message": "You cannot edit this pet."}), 403
        updated = pet_service.update_pet(qr_id, form)
        return jsonify(serialize_pet(updated)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except FileNotFoundError:
        return _invalid_code(qr_id)
    except Exception as e:
        logging.error(f"Update pet API error (qr_id: {qr_id}): {e}", exc_info=True)
        return jsonify({"error_code": "UPDATE_FAILED", "message": "Could not update the pet."}), 500


@pets_bp.route('/<string:qr_id>/photo', methods=['POST'])
@jwt_required()
def upload_photo(qr_id: str):
    """[owner or admin] Multipart upload (field 'photo') to Firebase Storage."""
    user_id = get_jwt_identity()
    pet_service = current_app.services['pets']
    photo = request.files.get('photo')
    if photo is None or not photo.filename:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": {"photo": ["A photo file is required."]}}), 400
    try:
        pet = pet_service.get_pet(qr_id)
        if not _can_edit(pet, user_id):
            return jsonify({"error_code": "FORBIDDEN", "message": "You cannot edit this pet."}), 403
        updated = pet_service.set_photo(qr_id, photo.stream, photo.filename, photo.mimetype)
        return jsonify(serialize_pet(updated)), 200
    except FileNotFoundError:
        return _invalid_code(qr_id)
    except ValueError as e:
        return jsonify({"error_code": "INVALID_FILE_TYPE", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"Photo upload API error (qr_id: {qr_id}): {e}", exc_info=True)
        return jsonify({"error_code": "UPLOAD_FAILED", "message": "Could not upload the photo."}), 500


@pets_bp.route('/<string:qr_id>/qr', methods=['GET'])
@jwt_required()
def download_qr(qr_id: str):
    """Download the pet's QR code as png, svg, pdf or dxf (?format=...)."""
    pet_service = current_app.services['pets']
    qr_service = current_app.services['qr']
    export_service = current_app.services['export']
    try:
        query = ExportQuerySchema().load(request.args)
        pet = pet_service.get_by_qr_id(qr_id)
        graphic = qr_service.graphic_for(pet) if pet else None
        exported = export_service.export(graphic, query['format'], pet.pet_name if pet else qr_id)
        return send_file(
            io.BytesIO(exported.content),
            mimetype=exported.mimetype,
            as_attachment=True,
            download_name=exported.filename,
        )
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except (QRGraphicNotFoundError, MalformedRecordError):
        return _invalid_code(qr_id)
    except UnsupportedExportFormatError as e:
        return jsonify({"error_code": "UNSUPPORTED_FORMAT", "message": str(e)}), 400
    except Exception as e:
        logging.error(f"QR export API error (qr_id: {qr_id}): {e}", exc_info=True)
        return jsonify({"error_code": "EXPORT_FAILED", "message": "Could not export the QR code."}), 500
