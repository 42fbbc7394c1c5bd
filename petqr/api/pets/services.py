# petqr/api/pets/services.py
import logging
from typing import Dict, Any, Optional, List
from firebase_admin import firestore

from petqr.models.pet import PetRecord, MalformedRecordError
from petqr.models.location import LocationSample, LocationHistory
from petqr.services.storage_service import StorageService


class PetService:
    """Owns every read and write of the Firestore 'pets' collection."""

    def __init__(self, storage_service: StorageService, db=None):
        self.db = db or firestore.client()
        self.pets_ref = self.db.collection('pets')
        self.storage_service = storage_service
        logging.info("PetService initialized with dependencies.")

    # --- reads ---
    def get_by_qr_id(self, qr_id: str) -> Optional[PetRecord]:
        """
        Look a pet up by its display identifier.
        Malformed rows raise MalformedRecordError instead of being returned half-filled.
        """
        if not qr_id:
            return None
        query = self.pets_ref.where('qr_id', '==', qr_id).limit(1).stream()
        doc = next(query, None)
        if doc is None:
            return None
        return PetRecord.from_dict(doc.to_dict())

    def get_pet(self, qr_id: str) -> PetRecord:
        pet = self.get_by_qr_id(qr_id)
        if not pet:
            raise FileNotFoundError(f"No pet registered under qr_id '{qr_id}'.")
        return pet

    def list_pets(self, search: Optional[str] = None) -> List[PetRecord]:
        """
        All pets, newest first, optionally filtered by a substring of the
        pet name or owner name (case-insensitive) or the phone (as typed).
        """
        docs = self.pets_ref.order_by('created_at', direction=firestore.Query.DESCENDING).stream()
        pets = []
        for doc in docs:
            try:
                pets.append(PetRecord.from_dict(doc.to_dict()))
            except MalformedRecordError as e:
                logging.warning(f"Skipping malformed pet row {doc.id}: {e}")

        term = (search or "").strip()
        if not term:
            return pets
        lowered = term.lower()
        return [
            pet for pet in pets
            if lowered in pet.pet_name.lower() or lowered in pet.owner_name.lower() or term in pet.phone
        ]

    # --- writes ---
    def create_pet(self, form: Dict[str, Any], owner_id: Optional[str] = None) -> PetRecord:
        """Persist a new pet. Both the document id and the qr_id are assigned here."""
        pet = PetRecord.new(form, owner_id=owner_id)
        try:
            self.pets_ref.document(pet.id).set(pet.to_dict())
        except Exception as e:
            logging.error(f"Pet creation failed (owner: {owner_id}): {e}", exc_info=True)
            raise RuntimeError("Could not save the pet. Please try again.")
        logging.info(f"Pet created: id={pet.id} qr_id={pet.qr_id}")
        return pet

    def update_pet(self, qr_id: str, form: Dict[str, Any]) -> PetRecord:
        """Full-record update. id, qr_id, owner and creation time never change."""
        current = self.get_pet(qr_id)
        updated = current.with_form(form)
        self.pets_ref.document(current.id).set(updated.to_dict())
        logging.info(f"Pet {qr_id} updated")
        return updated

    def set_photo(self, qr_id: str, stream, filename: str, content_type: str) -> PetRecord:
        pet = self.get_pet(qr_id)
        photo_url = self.storage_service.upload_pet_photo(pet.qr_id, stream, filename, content_type)
        self.pets_ref.document(pet.id).update({'photo_url': photo_url})
        pet.photo_url = photo_url
        logging.info(f"Photo attached to pet {qr_id}")
        return pet

    def delete_pet(self, qr_id: str) -> None:
        pet = self.get_pet(qr_id)
        pet_ref = self.pets_ref.document(pet.id)
        for location_doc in pet_ref.collection('locations').stream():
            location_doc.reference.delete()
        pet_ref.delete()
        logging.info(f"Pet {qr_id} deleted (id={pet.id})")

    # --- location history ---
    def add_location(self, pet: PetRecord, sample: LocationSample) -> None:
        self.pets_ref.document(pet.id).collection('locations').document().set(sample.to_dict())

    def location_history(self, pet: PetRecord) -> LocationHistory:
        docs = self.pets_ref.document(pet.id).collection('locations').order_by('timestamp').stream()
        history = LocationHistory()
        for doc in docs:
            try:
                history.append(LocationSample.from_dict(doc.to_dict()))
            except MalformedRecordError as e:
                logging.warning(f"Skipping malformed location row {doc.id} of pet {pet.qr_id}: {e}")
        return history

    @staticmethod
    def can_edit(pet: PetRecord, user_id: str, is_admin: bool) -> bool:
        return is_admin or (pet.owner_id is not None and pet.owner_id == user_id)
