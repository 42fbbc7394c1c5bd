# petqr/api/pet_info/routes.py
import logging
from dataclasses import asdict
from flask import Blueprint, request, jsonify, current_app, render_template
from marshmallow import ValidationError

from petqr.api.pets.schemas import PetPublicSchema
from petqr.services.qr_service import InvalidQRCodeError, parse_qr_id
from .schemas import LocationReportSchema, LocationSampleSchema
from .services import PetInfoState, STATUS_ERROR

# Public pages and APIs used by anonymous finders.
pet_info_bp = Blueprint('pet_info_bp', __name__)


def serialize_state(state: PetInfoState) -> dict:
    sample_schema = LocationSampleSchema()
    return {
        "status": state.status,
        "qr_id": state.qr_id,
        "pet": PetPublicSchema().dump(asdict(state.pet)) if state.pet else None,
        "user_location": sample_schema.dump(state.user_location),
        "history": sample_schema.dump(state.history.locations, many=True),
        "contact_url": state.contact_url,
    }


def _unresolved(state: PetInfoState):
    body = serialize_state(state)
    if state.status == STATUS_ERROR:
        body.update({"error_code": "LOOKUP_FAILED", "message": "Could not load the pet right now. Please try again."})
        return jsonify(body), 503
    body.update({"error_code": "INVALID_QR_CODE", "message": "Invalid QR code."})
    return jsonify(body), 404


@pet_info_bp.route('/pet-info', methods=['GET'])
def pet_info_page():
    """
    The URL printed inside every QR code. Its path and query parameter
    must never change.
    """
    try:
        qr_id = parse_qr_id(request.query_string.decode('utf-8', errors='replace'))
    except InvalidQRCodeError as e:
        logging.info(f"Unreadable QR query on the info page: {e}")
        qr_id = None

    state = current_app.services['pet_info'].resolve(qr_id)
    if state.is_valid:
        status_code = 200
    elif state.status == STATUS_ERROR:
        status_code = 503
    else:
        status_code = 404
    return render_template('pet_info.html', state=state), status_code


@pet_info_bp.route('/api/pet-info/<string:qr_id>', methods=['GET'])
def get_pet_info(qr_id: str):
    state = current_app.services['pet_info'].resolve(qr_id)
    if not state.is_valid:
        return _unresolved(state)
    return jsonify(serialize_state(state)), 200


@pet_info_bp.route('/api/pet-info/<string:qr_id>/locations', methods=['POST'])
def report_location(qr_id: str):
    """Finder's position report. A denied geolocation still returns the contact details."""
    pet_info_service = current_app.services['pet_info']
    try:
        report = LocationReportSchema().load(request.get_json(silent=True) or {})
        if report['denied']:
            logging.info(f"Geolocation denied by finder of pet {qr_id}")
            state = pet_info_service.resolve(qr_id)
        else:
            state = pet_info_service.report_location(qr_id, report['latitude'], report['longitude'])

        if not state.is_valid:
            return _unresolved(state)
        return jsonify(serialize_state(state)), 200
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except Exception as e:
        logging.error(f"Location report API error (qr_id: {qr_id}): {e}", exc_info=True)
        return jsonify({"error_code": "LOCATION_REPORT_FAILED", "message": "Could not record the location."}), 500


@pet_info_bp.route('/api/pet-info/<string:qr_id>/locations', methods=['GET'])
def list_locations(qr_id: str):
    state = current_app.services['pet_info'].resolve(qr_id)
    if not state.is_valid:
        return _unresolved(state)
    return jsonify({"qr_id": qr_id, "locations": LocationSampleSchema(many=True).dump(state.history.locations)}), 200
