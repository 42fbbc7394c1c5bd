# petqr/api/pet_info/services.py
"""
Public info resolver and location reporter.

Both entry points return a PetInfoState instead of raising: an unknown
or unreadable qr_id yields the "invalid" state, a store failure yields
the "error" state, and a failed geocoding lookup still yields a usable
(contact-only) state.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote

from petqr.api.pets.services import PetService
from petqr.models.location import LocationSample, LocationHistory
from petqr.models.pet import PetRecord, MalformedRecordError
from petqr.services.geocoding_service import GeocodingService

STATUS_RESOLVED = "resolved"
STATUS_INVALID = "invalid"
STATUS_ERROR = "error"


def contact_message(pet_name: str, location: Optional[LocationSample] = None) -> str:
    location_text = ""
    if location is not None and location.city:
        location_text = f" na região de {location.city}, {location.country}" if location.country else f" na região de {location.city}"
    return f"Olá! Encontrei seu pet {pet_name}{location_text}!"


def whatsapp_url(phone_digits: str, message: str) -> str:
    return f"https://wa.me/{phone_digits}?text={quote(message, safe='')}"


@dataclass
class PetInfoState:
    status: str
    qr_id: Optional[str] = None
    pet: Optional[PetRecord] = None
    user_location: LocationSample = field(default_factory=LocationSample.unresolved)
    history: LocationHistory = field(default_factory=LocationHistory)
    contact_url: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.status == STATUS_RESOLVED


class PetInfoService:

    def __init__(self, pet_service: PetService, geocoding_service: GeocodingService, persist_history: bool = True):
        self.pet_service = pet_service
        self.geocoding_service = geocoding_service
        self.persist_history = persist_history

    def _lookup(self, qr_id: Optional[str]) -> Optional[PetRecord]:
        if not qr_id:
            return None
        try:
            return self.pet_service.get_by_qr_id(qr_id)
        except MalformedRecordError as e:
            logging.error(f"Pet row for qr_id {qr_id} is malformed: {e}")
            return None

    def _history(self, pet: PetRecord) -> LocationHistory:
        if not self.persist_history:
            return LocationHistory()
        try:
            return self.pet_service.location_history(pet)
        except Exception as e:
            logging.error(f"Could not load location history for pet {pet.qr_id}: {e}", exc_info=True)
            return LocationHistory()

    def resolve(self, qr_id: Optional[str]) -> PetInfoState:
        """Resolve a scanned qr_id. Location fields stay null until a report arrives."""
        try:
            pet = self._lookup(qr_id)
        except Exception as e:
            logging.error(f"Pet lookup failed for qr_id {qr_id!r}: {e}", exc_info=True)
            return PetInfoState(status=STATUS_ERROR, qr_id=qr_id)

        if pet is None:
            logging.info(f"Invalid QR code scanned: {qr_id!r}")
            return PetInfoState(status=STATUS_INVALID, qr_id=qr_id)

        return PetInfoState(
            status=STATUS_RESOLVED,
            qr_id=qr_id,
            pet=pet,
            history=self._history(pet),
            contact_url=whatsapp_url(pet.phone_digits, contact_message(pet.pet_name)),
        )

    def report_location(self, qr_id: Optional[str], latitude: float, longitude: float) -> PetInfoState:
        """
        Record a finder's position: reverse geocode it, append it to the
        history (persisting it when enabled) and rebuild the contact link
        so the message names the place.
        """
        state = self.resolve(qr_id)
        if not state.is_valid:
            return state

        city, country = self.geocoding_service.reverse(latitude, longitude)
        sample = LocationSample(latitude=latitude, longitude=longitude, city=city, country=country)

        if self.persist_history:
            try:
                self.pet_service.add_location(state.pet, sample)
            except Exception as e:
                # the finder still gets the contact link
                logging.error(f"Could not persist location for pet {qr_id}: {e}", exc_info=True)
        state.history.append(sample)

        state.user_location = sample
        state.contact_url = whatsapp_url(state.pet.phone_digits, contact_message(state.pet.pet_name, sample))
        logging.info(f"Location reported for pet {qr_id}: {city}, {country}")
        return state
