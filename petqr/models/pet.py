# petqr/models/pet.py
import re
import uuid
import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Dict, Any

from petqr.utils.datetime_utils import DateTimeUtils

QR_ID_BYTES = 9  # token_urlsafe(9) -> 12 chars


class MalformedRecordError(ValueError):
    """A row read from (or about to be written to) the store does not match the record schema."""


def generate_qr_id() -> str:
    """Opaque, URL-safe display identifier embedded in the public URL."""
    return secrets.token_urlsafe(QR_ID_BYTES)


def digits_only(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


def _required_str(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise MalformedRecordError(f"'{key}' is required and must be a non-empty string")
    return value


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise MalformedRecordError(f"'{key}' must be a string")
    return value


def _reward(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, bool):
        raise MalformedRecordError("'reward' must be a number")
    try:
        reward = Decimal(str(value))
    except InvalidOperation:
        raise MalformedRecordError(f"'reward' must be a number, got {value!r}")
    if not reward.is_finite() or reward < 0:
        raise MalformedRecordError("'reward' must be a non-negative number")
    return reward


@dataclass
class PetRecord:
    """
    Document structure of the Firestore 'pets' collection.

    `id` is the internal document id; `qr_id` is the display identifier
    that goes into the public URL and never changes once generated.
    """
    id: str
    qr_id: str
    pet_name: str
    owner_name: str
    phone: str
    address: Optional[str] = None
    notes: Optional[str] = None
    reward: Decimal = Decimal("0")
    photo_url: Optional[str] = None
    owner_id: Optional[str] = None
    created_at: datetime = field(default_factory=DateTimeUtils.now)

    @classmethod
    def new(cls, form: Dict[str, Any], owner_id: Optional[str] = None) -> "PetRecord":
        """Build a fresh record from validated form data, assigning both identifiers."""
        return cls.from_dict({
            **form,
            "id": str(uuid.uuid4()),
            "qr_id": generate_qr_id(),
            "owner_id": owner_id,
            "created_at": DateTimeUtils.now(),
        })

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PetRecord":
        """
        Build a PetRecord from a Firestore row.

        Only known fields are read; a row missing required fields or
        carrying values of the wrong type is rejected with
        MalformedRecordError instead of leaking undefined fields.
        """
        if not isinstance(data, dict):
            raise MalformedRecordError("pet row must be a mapping")

        created_at = data.get("created_at")
        try:
            created_at = DateTimeUtils.coerce_datetime(created_at, "created_at") if created_at is not None else DateTimeUtils.now()
        except ValueError as e:
            raise MalformedRecordError(str(e))

        return cls(
            id=_required_str(data, "id"),
            qr_id=_required_str(data, "qr_id"),
            pet_name=_required_str(data, "pet_name"),
            owner_name=_required_str(data, "owner_name"),
            phone=_required_str(data, "phone"),
            address=_optional_str(data, "address"),
            notes=_optional_str(data, "notes"),
            reward=_reward(data.get("reward")),
            photo_url=_optional_str(data, "photo_url"),
            owner_id=_optional_str(data, "owner_id"),
            created_at=created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Firestore-ready dict. The reward is stored as a string to keep decimal precision."""
        return DateTimeUtils.for_firestore({
            "id": self.id,
            "qr_id": self.qr_id,
            "pet_name": self.pet_name,
            "owner_name": self.owner_name,
            "phone": self.phone,
            "address": self.address,
            "notes": self.notes,
            "reward": str(self.reward),
            "photo_url": self.photo_url,
            "owner_id": self.owner_id,
            "created_at": self.created_at,
        })

    def with_form(self, form: Dict[str, Any]) -> "PetRecord":
        """
        Full-record update: every editable field comes from `form`
        (missing optional fields are cleared), identity fields are kept.
        The photo is the exception: it is set by its own upload, so it is
        only replaced or cleared when the form carries a `photo_url` key.
        """
        updated = replace(
            self,
            pet_name=form["pet_name"],
            owner_name=form["owner_name"],
            phone=form["phone"],
            address=form.get("address") or None,
            notes=form.get("notes") or None,
            reward=_reward(form.get("reward")),
            photo_url=(form.get("photo_url") or None) if "photo_url" in form else self.photo_url,
        )
        # re-run row validation on the merged record
        return PetRecord.from_dict(updated.to_dict())

    @property
    def phone_digits(self) -> str:
        return digits_only(self.phone)
