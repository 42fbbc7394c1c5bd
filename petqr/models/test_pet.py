# petqr/models/test_pet.py
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from petqr.models.pet import PetRecord, MalformedRecordError, digits_only, generate_qr_id


def _row(**overrides):
    row = {
        "id": "doc-1",
        "qr_id": "abcDEF123456",
        "pet_name": "Rex",
        "owner_name": "João",
        "phone": "(11) 99999-9999",
        "reward": "150.00",
        "created_at": datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


def test_new_assigns_both_identifiers():
    pet = PetRecord.new({"pet_name": "Rex", "owner_name": "João", "phone": "11 9999"}, owner_id="user-1")
    assert pet.id and pet.qr_id
    assert pet.id != pet.qr_id
    assert len(pet.qr_id) == 12
    assert pet.owner_id == "user-1"
    assert pet.reward == Decimal("0")
    assert pet.created_at.tzinfo is not None


def test_qr_ids_are_url_safe_and_distinct():
    ids = {generate_qr_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(set(i) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_") for i in ids)


def test_from_dict_reads_known_fields_only():
    pet = PetRecord.from_dict(_row(extra_field="ignored", notes=""))
    assert pet.pet_name == "Rex"
    assert pet.notes is None
    assert pet.reward == Decimal("150.00")
    assert not hasattr(pet, "extra_field")


@pytest.mark.parametrize("overrides", [
    {"pet_name": None},
    {"owner_name": "   "},
    {"phone": 11999999999},
    {"qr_id": ""},
    {"reward": "-1"},
    {"reward": "lots"},
    {"reward": True},
    {"address": 42},
    {"created_at": 12345},
])
def test_from_dict_rejects_malformed_rows(overrides):
    with pytest.raises(MalformedRecordError):
        PetRecord.from_dict(_row(**overrides))


def test_from_dict_accepts_iso_created_at():
    pet = PetRecord.from_dict(_row(created_at="2024-01-15T10:30:00-03:00"))
    assert pet.created_at == datetime(2024, 1, 15, 13, 30, tzinfo=timezone.utc)


def test_to_dict_keeps_reward_precision():
    data = PetRecord.from_dict(_row(reward="10.50")).to_dict()
    assert data["reward"] == "10.50"
    assert data["created_at"].tzinfo == timezone.utc


def test_with_form_is_a_full_record_update():
    pet = PetRecord.from_dict(_row(notes="old notes", photo_url="https://storage.example/p.png", owner_id="user-1"))
    updated = pet.with_form({"pet_name": "Rex II", "owner_name": "Maria", "phone": "21 8888-8888"})

    assert updated.pet_name == "Rex II"
    assert updated.notes is None  # omitted optional fields are cleared
    assert updated.reward == Decimal("0")
    # identity fields never change
    assert updated.id == pet.id
    assert updated.qr_id == pet.qr_id
    assert updated.owner_id == "user-1"
    assert updated.created_at == pet.created_at
    assert updated.photo_url == "https://storage.example/p.png"


def test_phone_digits():
    assert digits_only("(11) 99999-9999") == "11999999999"
    assert digits_only("+55 11 9999") == "55119999"
    assert PetRecord.from_dict(_row()).phone_digits == "11999999999"


def test_with_form_photo_is_kept_unless_sent():
    pet = PetRecord.from_dict(_row(photo_url="https://storage.example/p.png"))
    form = {"pet_name": "Rex", "owner_name": "João", "phone": "11 9999"}

    assert pet.with_form(form).photo_url == "https://storage.example/p.png"
    assert pet.with_form({**form, "photo_url": None}).photo_url is None
    assert pet.with_form({**form, "photo_url": "https://storage.example/q.png"}).photo_url == "https://storage.example/q.png"
