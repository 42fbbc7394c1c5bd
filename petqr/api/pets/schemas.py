# petqr/api/pets/schemas.py
from decimal import Decimal
from marshmallow import Schema, fields, validate, pre_load, EXCLUDE

_REQUIRED = {"required": "This field is required."}


class PetFormSchema(Schema):
    """
    Pet profile form used by both the public flow and the admin console.
    pet_name, owner_name and phone are mandatory; reward defaults to 0.
    """
    class Meta:
        unknown = EXCLUDE

    pet_name = fields.Str(required=True, validate=validate.Length(min=1, max=80), error_messages=_REQUIRED)
    owner_name = fields.Str(required=True, validate=validate.Length(min=1, max=120), error_messages=_REQUIRED)
    phone = fields.Str(
        required=True,
        validate=[validate.Length(min=1, max=40), validate.Regexp(r".*\d.*", error="Phone must contain digits.")],
        error_messages=_REQUIRED,
    )
    address = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=200))
    notes = fields.Str(allow_none=True, load_default=None, validate=validate.Length(max=1000))
    reward = fields.Decimal(load_default=Decimal("0"), validate=validate.Range(min=0), places=2)
    # absent keeps the uploaded photo on update, null clears it
    photo_url = fields.URL(allow_none=True)

    @pre_load
    def strip_strings(self, data, **kwargs):
        """Blank strings count as missing, so required fields fail and optional ones become None."""
        if not isinstance(data, dict):
            return data
        cleaned = {}
        for key, value in data.items():
            if isinstance(value, str):
                value = value.strip()
                if value == "":
                    continue
            cleaned[key] = value
        return cleaned


class PetResponseSchema(Schema):
    """Pet record plus the value encoded in its QR code."""
    id = fields.Str(dump_only=True)
    qr_id = fields.Str(dump_only=True)
    pet_name = fields.Str()
    owner_name = fields.Str()
    phone = fields.Str()
    address = fields.Str(allow_none=True)
    notes = fields.Str(allow_none=True)
    reward = fields.Decimal(as_string=True, places=2)
    photo_url = fields.Str(allow_none=True)
    owner_id = fields.Str(allow_none=True)
    created_at = fields.DateTime()
    qr_value = fields.Str()


class PetPublicSchema(Schema):
    """What a finder sees; internal ids and the owner identity are left out."""
    qr_id = fields.Str()
    pet_name = fields.Str()
    owner_name = fields.Str()
    phone = fields.Str()
    address = fields.Str(allow_none=True)
    notes = fields.Str(allow_none=True)
    reward = fields.Decimal(as_string=True, places=2)
    photo_url = fields.Str(allow_none=True)


class DeleteConfirmationSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    confirm = fields.Str(required=True, error_messages={"required": "Send the pet's qr_id as 'confirm' to delete it."})


class ExportQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    format = fields.Str(load_default="png", validate=validate.OneOf(["png", "svg", "pdf", "dxf"]))
